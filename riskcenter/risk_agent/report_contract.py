# riskcenter/risk_agent/report_contract.py
# Purpose: Shape of a valid six-step report, its validator and schema descriptor

"""
Report Contract

One set of field tables drives both directions:
- validate(): decoded JSON (or an existing report) -> tagged StructuredReport
- schema_descriptor(): JSON schema handed to the generation service

Validation is strict. Nothing is coerced, trimmed or default-filled; the
first problem found is reported with the step and dotted field path.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import Result, SchemaViolation
from .report_models import (
    METADATA_FIELDS,
    OPTION_KEYS,
    OPTIONAL_METADATA,
    KeyValueEntry,
    KeyValueList,
    OptionDetail,
    OptionSet,
    RecommendationBlock,
    ReportEnvelope,
    Step,
    StructuredReport,
)


# ============================================================================
# Field Tables
# ============================================================================

STEP_COUNT = 6
STEP_KEYS = tuple(f"step{i}" for i in range(1, STEP_COUNT + 1))

KEY_VALUE_STEPS = (1, 2, 3)
OPTION_STEPS = (4, 5)
RECOMMENDATION_STEP = 6

KEY_VALUE_FIELDS = ("header", "text")
STEP4_FIELDS = ("title", "suggestedLanguage", "policyMatch", "riskScore", "legalReference", "recommendation")
STEP5_FIELDS = ("title", "likelyResponse", "schoolRisk", "legalReference")
OPTION_FIELDS = {4: STEP4_FIELDS, 5: STEP5_FIELDS}
RECOMMENDATION_FIELDS = ("recommendationSummary", "implementationSteps")
STEP_FIELDS = ("title", "content")

STEP_PURPOSES = {
    1: "Classify the issue: type, summary, stakeholders.",
    2: "Match the issue to handbook sections and policy gaps.",
    3: "Initial risk tier with justification.",
    4: "Three administrator response options, A to C.",
    5: "Projected complainant reaction to each of options A to C.",
    6: "Final recommendation and ordered action plan.",
}


class _Violation(Exception):
    """Internal early exit; converted to a SchemaViolation result."""

    def __init__(self, message: str, step: Optional[int], path: str):
        super().__init__(message)
        self.violation = SchemaViolation(message, step=step, path=path)


def _require_string(value: Any, step: Optional[int], path: str) -> str:
    if not isinstance(value, str):
        raise _Violation(f"has a non-string value at {path}", step, path)
    if not value.strip():
        raise _Violation(f"has a blank value at {path}", step, path)
    return value


def _require_object(value: Any, keys: Tuple[str, ...], step: Optional[int], path: str) -> Mapping[str, Any]:
    """Object with exactly ``keys``. Missing keys are reported before extras."""
    if not isinstance(value, Mapping):
        raise _Violation(f"has a malformed {path} (expected an object)", step, path)
    for key in keys:
        if key not in value:
            raise _Violation(f"is missing {path}.{key}", step, f"{path}.{key}")
    for key in value:
        if key not in keys:
            raise _Violation(f"has an unexpected field {path}.{key}", step, f"{path}.{key}")
    return value


def _require_list(value: Any, step: Optional[int], path: str) -> List[Any]:
    if not isinstance(value, list):
        raise _Violation(f"has a malformed {path} (expected a list)", step, path)
    if not value:
        raise _Violation(f"has an empty {path}", step, path)
    return value


# ============================================================================
# Contract
# ============================================================================

class ReportContract:
    """Defines and checks the six-step report shape."""

    def validate(self, candidate: Any, envelope: Optional[ReportEnvelope] = None) -> Result:
        """
        Validate a decoded document and build a tagged StructuredReport.

        Args:
            candidate: dict decoded from JSON, or a StructuredReport to re-check
            envelope: caller-owned metadata; when given, the candidate may only
                carry step1..step6

        Returns:
            Result.ok(StructuredReport) or Result.fail(SchemaViolation)
        """
        if isinstance(candidate, StructuredReport):
            candidate = candidate.to_dict()
        if not isinstance(candidate, Mapping):
            return Result.fail(SchemaViolation("is not a JSON object", step=None, path=""))

        try:
            steps = tuple(self._validate_step(i, candidate) for i in range(1, STEP_COUNT + 1))
            self._reject_unexpected_keys(candidate, envelope)
            metadata = self._resolve_metadata(candidate, envelope)
        except _Violation as v:
            return Result.fail(v.violation)

        return Result.ok(StructuredReport(steps=steps, **metadata))

    def serialize(self, report: StructuredReport) -> Dict[str, Any]:
        """Wire (JSON-ready) form of a report."""
        return report.to_dict()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate_step(self, index: int, candidate: Mapping[str, Any]) -> Step:
        key = f"step{index}"
        if key not in candidate:
            raise _Violation(f"is missing step {index}", index, key)

        raw = _require_object(candidate[key], STEP_FIELDS, index, key)
        title = _require_string(raw["title"], index, f"{key}.title")
        path = f"{key}.content"

        if index in KEY_VALUE_STEPS:
            content = self._key_value_list(raw["content"], index, path)
        elif index in OPTION_STEPS:
            content = self._option_set(raw["content"], index, path)
        else:
            content = self._recommendation(raw["content"], index, path)

        return Step(index=index, title=title, content=content)

    def _key_value_list(self, value: Any, index: int, path: str) -> KeyValueList:
        if not isinstance(value, list):
            raise _Violation(
                f"has the wrong content type for step {index} (expected a list of header/text entries)",
                index, path,
            )
        items = _require_list(value, index, path)
        entries = []
        for n, item in enumerate(items):
            item_path = f"{path}[{n}]"
            raw = _require_object(item, KEY_VALUE_FIELDS, index, item_path)
            entries.append(KeyValueEntry(
                header=_require_string(raw["header"], index, f"{item_path}.header"),
                text=_require_string(raw["text"], index, f"{item_path}.text"),
            ))
        return KeyValueList(entries=tuple(entries))

    def _option_set(self, value: Any, index: int, path: str) -> OptionSet:
        if not isinstance(value, Mapping):
            raise _Violation(
                f"has the wrong content type for step {index} (expected options A, B and C)",
                index, path,
            )
        raw = _require_object(value, OPTION_KEYS, index, path)
        field_names = OPTION_FIELDS[index]

        details = []
        for option_key in OPTION_KEYS:
            option_path = f"{path}.{option_key}"
            option = _require_object(raw[option_key], field_names, index, option_path)
            values = {
                name: _require_string(option[name], index, f"{option_path}.{name}")
                for name in field_names
            }
            details.append(OptionDetail(
                title=values["title"],
                fields=tuple((name, values[name]) for name in field_names if name != "title"),
            ))
        return OptionSet(option_a=details[0], option_b=details[1], option_c=details[2])

    def _recommendation(self, value: Any, index: int, path: str) -> RecommendationBlock:
        if not isinstance(value, Mapping):
            raise _Violation(
                f"has the wrong content type for step {index} (expected a recommendation summary and steps)",
                index, path,
            )
        raw = _require_object(value, RECOMMENDATION_FIELDS, index, path)
        summary = _require_string(raw["recommendationSummary"], index, f"{path}.recommendationSummary")
        steps_path = f"{path}.implementationSteps"
        items = _require_list(raw["implementationSteps"], index, steps_path)
        steps = tuple(
            _require_string(item, index, f"{steps_path}[{n}]") for n, item in enumerate(items)
        )
        return RecommendationBlock(summary=summary, implementation_steps=steps)

    # ------------------------------------------------------------------
    # Top level
    # ------------------------------------------------------------------

    def _reject_unexpected_keys(
        self, candidate: Mapping[str, Any], envelope: Optional[ReportEnvelope]
    ) -> None:
        metadata_keys = {wire for wire, _ in METADATA_FIELDS}
        allowed = set(STEP_KEYS) | metadata_keys
        for key in candidate:
            if key in metadata_keys and envelope is not None:
                raise _Violation(
                    f"carries report metadata '{key}'; only step1..step6 may be generated",
                    None, str(key),
                )
            if key not in allowed:
                raise _Violation(f"has an unexpected top-level field '{key}'", None, str(key))

    def _resolve_metadata(
        self, candidate: Mapping[str, Any], envelope: Optional[ReportEnvelope]
    ) -> Dict[str, Any]:
        """Metadata comes from the envelope when one is given, else from the candidate."""
        source = envelope.to_dict() if envelope is not None else candidate
        metadata: Dict[str, Any] = {}
        for wire, attr in METADATA_FIELDS:
            value = source.get(wire)

            if wire in OPTIONAL_METADATA and value is None:
                metadata[attr] = None
                continue
            if value is None:
                raise _Violation(f"is missing report metadata '{wire}'", None, wire)
            metadata[attr] = _require_string(value, None, wire)
        return metadata

    # ------------------------------------------------------------------
    # Schema descriptor
    # ------------------------------------------------------------------

    def schema_descriptor(self) -> Dict[str, Any]:
        """JSON schema for the step1..step6 document the service must return."""
        properties = {}
        for index in range(1, STEP_COUNT + 1):
            if index in KEY_VALUE_STEPS:
                content = _array(_object(KEY_VALUE_FIELDS))
            elif index in OPTION_STEPS:
                option = _object(OPTION_FIELDS[index])
                content = _object(OPTION_KEYS, {key: option for key in OPTION_KEYS})
            else:
                content = _object(
                    RECOMMENDATION_FIELDS,
                    {
                        "recommendationSummary": {"type": "string"},
                        "implementationSteps": _array({"type": "string"}),
                    },
                )
            step_schema = _object(STEP_FIELDS, {"title": {"type": "string"}, "content": content})
            step_schema["description"] = STEP_PURPOSES[index]
            properties[f"step{index}"] = step_schema

        return _object(STEP_KEYS, properties)


def _object(keys: Tuple[str, ...], properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if properties is None:
        properties = {key: {"type": "string"} for key in keys}
    return {
        "type": "object",
        "properties": properties,
        "required": list(keys),
        "additionalProperties": False,
    }


def _array(items: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "array", "items": items, "minItems": 1}


__all__ = [
    "ReportContract",
    "STEP_KEYS",
    "STEP4_FIELDS",
    "STEP5_FIELDS",
    "OPTION_FIELDS",
]
