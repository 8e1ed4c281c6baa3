# riskcenter/risk_agent/errors.py
# Purpose: Error taxonomy and Result values for the report core

"""
Errors travel as values. Expected failures are wrapped in ``Result.fail``;
only ``ReportStore.get`` raises (``NotFound``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


# ============================================================================
# Error Kinds
# ============================================================================

class RiskCenterError(Exception):
    """Base class for every expected failure in the report core."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def user_message(self) -> str:
        return self.message

    def __eq__(self, other: object) -> bool:
        return (
            type(self) is type(other)
            and self.__dict__ == other.__dict__  # type: ignore[union-attr]
        )

    def __hash__(self) -> int:
        return hash((type(self), self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class InputError(RiskCenterError):
    """Blank or otherwise unusable issue text."""

    kind = "input"

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint

    def user_message(self) -> str:
        return self.hint or "Please describe the issue before generating a report."


class NetworkError(RiskCenterError):
    """The generation service could not be reached or answered badly."""

    kind = "network"

    def __init__(self, message: str, category: str = "transport", status_code: Optional[int] = None):
        super().__init__(message)
        self.category = category
        self.status_code = status_code

    @classmethod
    def from_provider_error(cls, error: Exception) -> "NetworkError":
        return cls(
            str(error),
            category=getattr(error, "category", "transport"),
            status_code=getattr(error, "status_code", None),
        )

    def user_message(self) -> str:
        if self.category == "timeout":
            return "The analysis service did not respond in time. Please try again."
        if self.status_code:
            return f"The analysis service is unavailable (HTTP {self.status_code}). Please try again."
        return "The analysis service is unavailable. Please try again."


class ParseError(RiskCenterError):
    """The generated body is not a JSON object."""

    kind = "parse"

    def user_message(self) -> str:
        return f"The analysis service returned unparsable output: {self.message}"


class SchemaViolation(RiskCenterError):
    """A decoded document breaks the report contract."""

    kind = "schema"

    def __init__(self, message: str, step: Optional[int] = None, path: str = ""):
        super().__init__(message)
        self.step = step
        self.path = path

    def user_message(self) -> str:
        return f"The analysis service returned a document that {self.message}"


class NotFound(RiskCenterError):
    """Unknown archive id, scenario key or step index."""

    kind = "not_found"


class StateConflict(RiskCenterError):
    """Operation not allowed in the session's current state (e.g. nothing to archive)."""

    kind = "conflict"


# ============================================================================
# Result
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a RiskCenterError, never both."""

    value: Optional[T] = None
    error: Optional[RiskCenterError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any) -> "Result":
        return cls(value=value)

    @classmethod
    def fail(cls, error: RiskCenterError) -> "Result":
        if error is None:
            raise ValueError("Result.fail requires an error")
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


__all__ = [
    "RiskCenterError",
    "InputError",
    "NetworkError",
    "ParseError",
    "SchemaViolation",
    "NotFound",
    "StateConflict",
    "Result",
]
