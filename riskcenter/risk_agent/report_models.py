# riskcenter/risk_agent/report_models.py
# Purpose: Immutable data models for six-step risk reports

"""
Report Models - tagged, immutable content variants with wire serialization.

Pattern: "Tuples internally, dicts externally". Instances are only built by
ReportContract.validate, which assigns each variant its tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union


# ============================================================================
# Enums
# ============================================================================

class ContentTag(Enum):
    """Which renderer handles a content value."""
    KEY_VALUE_LIST = "key_value_list"
    OPTION_SET = "option_set"
    RECOMMENDATION_BLOCK = "recommendation_block"
    PLAIN_TEXT = "plain_text"
    ERROR = "error"


OPTION_KEYS = ("optionA", "optionB", "optionC")

# wire name -> attribute name
METADATA_FIELDS = (
    ("id", "id"),
    ("title", "title"),
    ("issueText", "issue_text"),
    ("createdAt", "created_at"),
    ("scenarioKey", "scenario_key"),
)
OPTIONAL_METADATA = frozenset({"scenarioKey"})


# ============================================================================
# Content Variants
# ============================================================================

@dataclass(frozen=True)
class KeyValueEntry:
    header: str
    text: str

    def to_wire(self) -> Dict[str, str]:
        return {"header": self.header, "text": self.text}


@dataclass(frozen=True)
class KeyValueList:
    """Steps 1-3: ordered header/text pairs."""

    entries: Tuple[KeyValueEntry, ...]
    tag: ContentTag = field(default=ContentTag.KEY_VALUE_LIST, init=False)

    def to_wire(self) -> list:
        return [entry.to_wire() for entry in self.entries]


@dataclass(frozen=True)
class OptionDetail:
    """One response option. ``fields`` excludes the title and keeps wire order."""

    title: str
    fields: Tuple[Tuple[str, str], ...]

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if name == "title":
            return self.title
        for key, value in self.fields:
            if key == name:
                return value
        return default

    def to_wire(self) -> Dict[str, str]:
        data = {"title": self.title}
        data.update(self.fields)
        return data


@dataclass(frozen=True)
class OptionSet:
    """Steps 4-5: exactly three options, always A, B, C."""

    option_a: OptionDetail
    option_b: OptionDetail
    option_c: OptionDetail
    tag: ContentTag = field(default=ContentTag.OPTION_SET, init=False)

    @property
    def options(self) -> Iterator[Tuple[str, OptionDetail]]:
        return iter(zip(OPTION_KEYS, (self.option_a, self.option_b, self.option_c)))

    def to_wire(self) -> Dict[str, Dict[str, str]]:
        return {key: detail.to_wire() for key, detail in self.options}


@dataclass(frozen=True)
class RecommendationBlock:
    """Step 6: summary plus ordered implementation steps."""

    summary: str
    implementation_steps: Tuple[str, ...]
    tag: ContentTag = field(default=ContentTag.RECOMMENDATION_BLOCK, init=False)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "recommendationSummary": self.summary,
            "implementationSteps": list(self.implementation_steps),
        }


@dataclass(frozen=True)
class PlainText:
    """
    Free text from outside the contract, such as notes pasted by an
    administrator. ReportContract never produces it; it exists so the
    renderer can display such text with the same paragraph and bold rules.
    """

    text: str
    tag: ContentTag = field(default=ContentTag.PLAIN_TEXT, init=False)

    def to_wire(self) -> str:
        return self.text


@dataclass(frozen=True)
class ErrorContent:
    """Pseudo-variant shown in the step-1 slot when a generation fails."""

    message: str
    kind: str = "error"
    tag: ContentTag = field(default=ContentTag.ERROR, init=False)

    def to_wire(self) -> Dict[str, str]:
        return {"error": self.message, "kind": self.kind}


ContentModel = Union[KeyValueList, OptionSet, RecommendationBlock, PlainText, ErrorContent]


# ============================================================================
# Report
# ============================================================================

def format_report_date(created_at: str) -> str:
    """ISO timestamp -> "August 12, 2025". Unparseable values are returned unchanged."""
    try:
        dt = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return created_at
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"


@dataclass(frozen=True)
class Step:
    index: int
    title: str
    content: ContentModel

    def to_wire(self) -> Dict[str, Any]:
        return {"title": self.title, "content": self.content.to_wire()}


@dataclass(frozen=True)
class ReportEnvelope:
    """Caller-supplied metadata for a freshly generated document."""

    id: str
    title: str
    issue_text: str
    created_at: str
    scenario_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {wire: getattr(self, attr) for wire, attr in METADATA_FIELDS}


@dataclass(frozen=True)
class StructuredReport:
    id: str
    title: str
    issue_text: str
    created_at: str
    steps: Tuple[Step, ...]
    scenario_key: Optional[str] = None

    def display_date(self) -> str:
        return format_report_date(self.created_at)

    def step(self, index: int) -> Step:
        for step in self.steps:
            if step.index == index:
                return step
        raise KeyError(f"Report has no step {index}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {wire: getattr(self, attr) for wire, attr in METADATA_FIELDS}
        for step in self.steps:
            data[f"step{step.index}"] = step.to_wire()
        return data


__all__ = [
    "ContentTag",
    "ContentModel",
    "KeyValueEntry",
    "KeyValueList",
    "OptionDetail",
    "OptionSet",
    "RecommendationBlock",
    "PlainText",
    "ErrorContent",
    "Step",
    "ReportEnvelope",
    "StructuredReport",
    "format_report_date",
    "OPTION_KEYS",
    "METADATA_FIELDS",
    "OPTIONAL_METADATA",
]
