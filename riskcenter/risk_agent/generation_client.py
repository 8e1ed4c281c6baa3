# riskcenter/risk_agent/generation_client.py
# Purpose: Boundary between the report core and the LLM service

"""
Generation Client

The only place provider failures become report-core errors: every
LLMProviderError is mapped to a NetworkError carrying its category and
HTTP status. No retries happen here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config import APP_CONFIG
from ..llm_abstraction import LLMClient
from .errors import NetworkError, Result
from .prompt_builder import Instruction
from .report_contract import ReportContract


logger = logging.getLogger(__name__)


class GenerationClient(ABC):
    """Turns an instruction into raw text, or a NetworkError."""

    @abstractmethod
    def generate(self, instruction: Instruction, contract: ReportContract) -> Result:
        """Return Result.ok(raw_text) or Result.fail(NetworkError)."""


class LLMGenerationClient(GenerationClient):
    """GenerationClient backed by the provider-agnostic LLMClient."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        profile: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.llm = llm or LLMClient()
        self.profile = profile or APP_CONFIG.generation.profile
        self.temperature = APP_CONFIG.generation.temperature if temperature is None else temperature
        self.timeout = timeout

    def generate(self, instruction: Instruction, contract: ReportContract) -> Result:
        try:
            response = self.llm.generate(
                messages=instruction.messages(),
                profile=self.profile,
                temperature=self.temperature,
                timeout=self.timeout,
                response_schema=instruction.schema or contract.schema_descriptor(),
            )
        except ValueError as e:
            # Misconfigured profile/provider; surfaced as unavailable service
            logger.error(f"Generation request rejected: {str(e)}")
            return Result.fail(NetworkError(str(e), category="config"))

        if not response.success:
            return Result.fail(NetworkError.from_provider_error(response.error))

        return Result.ok(response.content)


__all__ = ["GenerationClient", "LLMGenerationClient"]
