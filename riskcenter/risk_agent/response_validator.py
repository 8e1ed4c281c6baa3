# riskcenter/risk_agent/response_validator.py
# Purpose: Two-phase check of raw generated text (parse, then contract)

"""
Response Validator

Phase 1 (parse) separates "not JSON at all" from phase 2 (contract) so the
user sees a different message for each. Only surrounding whitespace and a
single Markdown code fence are stripped; everything else is taken as-is.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from .errors import ParseError, Result
from .report_contract import ReportContract
from .report_models import ReportEnvelope


logger = logging.getLogger(__name__)

_FENCE = re.compile(r"\A```[A-Za-z0-9_-]*[ \t]*\n?(.*?)\n?```\Z", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove surrounding whitespace and one enclosing ``` fence, if present."""
    text = text.strip()
    match = _FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


class ResponseValidator:
    def __init__(self, contract: Optional[ReportContract] = None):
        self.contract = contract or ReportContract()

    def parse(self, raw_text: str) -> Result:
        if raw_text is None or not raw_text.strip():
            return Result.fail(ParseError("the response was empty"))

        text = strip_code_fence(raw_text)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Generated output is not JSON: {e.msg} at line {e.lineno} column {e.colno}")
            return Result.fail(ParseError(f"{e.msg} at line {e.lineno} column {e.colno}"))

        if not isinstance(data, dict):
            return Result.fail(ParseError(f"expected a JSON object, got {type(data).__name__}"))

        return Result.ok(data)

    def validate(self, raw_text: str, envelope: Optional[ReportEnvelope] = None) -> Result:
        parsed = self.parse(raw_text)
        if not parsed.success:
            return parsed

        result = self.contract.validate(parsed.value, envelope)
        if not result.success:
            logger.warning(f"Generated document rejected at {result.error.path or 'top level'}: {result.error.message}")
        return result


__all__ = ["ResponseValidator", "strip_code_fence"]
