# riskcenter/risk_agent/report_pipeline.py
# Purpose: Issue text -> StructuredReport (build, generate, validate, retry)

"""
Report Pipeline

    issue text + corpus
        -> PromptBuilder.build       (Instruction)
        -> GenerationClient.generate (raw text | NetworkError)
        -> ResponseValidator.validate(StructuredReport | ParseError | SchemaViolation)

Only NetworkError is retried, and only when max_network_retries > 0.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from ..config import APP_CONFIG, GenerationConfig
from .errors import InputError, NetworkError, Result
from .generation_client import GenerationClient
from .prompt_builder import PromptBuilder
from .report_contract import ReportContract
from .report_models import ReportEnvelope
from .response_validator import ResponseValidator


logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 80


def derive_title(issue_text: str) -> str:
    """First line of the issue, shortened for archive listings."""
    first_line = issue_text.strip().splitlines()[0].strip()
    if len(first_line) <= TITLE_MAX_CHARS:
        return first_line
    return first_line[:TITLE_MAX_CHARS - 3].rstrip() + "..."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportPipeline:
    def __init__(
        self,
        client: GenerationClient,
        corpus: Mapping[str, str],
        contract: Optional[ReportContract] = None,
        builder: Optional[PromptBuilder] = None,
        validator: Optional[ResponseValidator] = None,
        max_network_retries: int = 0,
        retry_backoff_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.client = client
        self.corpus = corpus
        self.contract = contract or ReportContract()
        self.builder = builder or PromptBuilder(self.contract)
        self.validator = validator or ResponseValidator(self.contract)
        self.max_network_retries = max(0, max_network_retries)
        self.retry_backoff_s = retry_backoff_s
        self.sleep = sleep
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        client: GenerationClient,
        corpus: Mapping[str, str],
        config: Optional[GenerationConfig] = None,
    ) -> "ReportPipeline":
        config = config or APP_CONFIG.generation
        return cls(
            client,
            corpus,
            max_network_retries=config.max_network_retries,
            retry_backoff_s=config.retry_backoff_s,
        )

    def run(
        self,
        issue_text: str,
        report_id: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> Result:
        """Generate and validate one report. Never raises for expected failures."""
        if not isinstance(issue_text, str) or not issue_text.strip():
            return Result.fail(InputError("issue text is blank"))

        envelope = ReportEnvelope(
            id=report_id or uuid.uuid4().hex,
            title=derive_title(issue_text),
            issue_text=issue_text.strip(),
            created_at=created_at or self.clock().isoformat(),
        )
        instruction = self.builder.build(issue_text, self.corpus)

        attempt = 0
        while True:
            generated = self.client.generate(instruction, self.contract)
            if generated.success:
                break

            error = generated.error
            if not isinstance(error, NetworkError) or attempt >= self.max_network_retries:
                logger.error(f"Generation failed for report {envelope.id}: {error.message}")
                return generated

            wait_time = self.retry_backoff_s * (2 ** attempt)
            logger.warning(
                f"Retry {attempt + 1}/{self.max_network_retries} for report {envelope.id}, "
                f"waiting {wait_time}s: {error.message}"
            )
            self.sleep(wait_time)
            attempt += 1

        result = self.validator.validate(generated.value, envelope)
        if result.success:
            logger.info(f"Report {envelope.id} generated and validated")
        return result


__all__ = ["ReportPipeline", "derive_title"]
