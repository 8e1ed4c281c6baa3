# riskcenter/llm_abstraction.py
# Purpose: One generate() call for the report pipeline, whatever the provider

"""
LLM Abstraction Layer

Sits between the report core and llm_layer.py:

    LLMGenerationClient -> LLMClient.generate -> ProviderRouter.call -> provider

What happens here:
- messages are checked (roles, required keys)
- a named profile from APP_CONFIG.llm_profiles fills any unset parameter
- the provider result or provider exception is wrapped in an LLMResponse

Provider exceptions never escape generate(); they come back on
``LLMResponse.error``. Bad arguments raise ValueError. There is no retry at
this level.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import APP_CONFIG, AppConfig
from .llm_layer import LLMProviderError, ProviderRouter


logger = logging.getLogger(__name__)

VALID_ROLES = ("system", "user", "assistant")
DEFAULT_TEMPERATURE = 0.7


# ============================================================================
# Request / Response
# ============================================================================

@dataclass(frozen=True)
class ResolvedRequest:
    """Call parameters after profile defaults have been applied."""
    provider: str
    model: str
    temperature: float
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None


@dataclass
class LLMResponse:
    """Outcome of one provider call. ``error`` is set when ``success`` is False."""
    content: str
    provider_used: str
    model_name: str
    request_id: str
    latency: float
    tokens: Dict[str, int] = field(default_factory=dict)
    success: bool = True
    error: Optional[LLMProviderError] = None
    raw_response: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        status = "ok" if self.success else "failed"
        used = self.tokens.get("total_tokens") if self.tokens else None
        tokens_str = f"{used} tokens" if used is not None else "tokens n/a"
        return f"LLMResponse[{self.request_id}] {status} {self.provider_used}/{self.model_name} in {self.latency:.2f}s, {tokens_str}"


def check_messages(messages: List[Dict[str, str]]) -> None:
    """Raise ValueError unless ``messages`` is a non-empty OpenAI-style list."""
    if not messages:
        raise ValueError("At least one message is required")

    for position, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ValueError(f"Message #{position} is a {type(message).__name__}, not a dict")
        missing = [key for key in ("role", "content") if key not in message]
        if missing:
            raise ValueError(f"Message #{position} lacks {', '.join(missing)}")
        if message["role"] not in VALID_ROLES:
            raise ValueError(f"Message #{position} role '{message['role']}' is not one of {VALID_ROLES}")


# ============================================================================
# Client
# ============================================================================

class LLMClient:
    """
    Provider-agnostic entry point.

        llm = LLMClient()
        response = llm.generate(messages, profile="report", response_schema=schema)
        if response.success:
            text = response.content
    """

    def __init__(self, router: Optional[ProviderRouter] = None, config: Optional[AppConfig] = None):
        self.config = config or APP_CONFIG
        self.router = router or ProviderRouter(self.config.providers)
        logger.debug(f"LLMClient ready with profiles {sorted(self.config.llm_profiles)}")

    def resolve(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        profile: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ResolvedRequest:
        """Explicit arguments win; the profile fills the rest."""
        defaults: Dict[str, Any] = self.profile(profile) if profile else {}

        provider = provider or defaults.get("provider")
        model = model or defaults.get("model")
        if not provider:
            raise ValueError("No provider given and none in the profile")
        if not model:
            raise ValueError("No model given and none in the profile")

        if temperature is None:
            temperature = defaults.get("temperature", DEFAULT_TEMPERATURE)
        return ResolvedRequest(
            provider=provider,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens or defaults.get("max_tokens"),
            timeout=timeout or defaults.get("timeout"),
        )

    def profile(self, name: str) -> Dict[str, Any]:
        try:
            return self.config.llm_profiles[name]
        except KeyError:
            raise ValueError(
                f"Unknown LLM profile '{name}'. Known profiles: {sorted(self.config.llm_profiles)}"
            ) from None

    def generate(
        self,
        messages: List[Dict[str, str]],
        provider: Optional[str] = None,
        model: Optional[str] = None,
        profile: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        """
        Run one call.

        Args:
            messages: OpenAI-style role/content dicts
            provider, model: override the profile's choice
            profile: key into APP_CONFIG.llm_profiles
            temperature, max_tokens, timeout: override the profile's values
            response_schema: JSON schema the provider should constrain output to

        Raises:
            ValueError: malformed messages, or no provider/model could be resolved
        """
        check_messages(messages)
        request = self.resolve(provider, model, profile, temperature, max_tokens, timeout)
        request_id = f"llm-{uuid.uuid4().hex[:12]}"

        if self.config.debug_mode:
            prompt_chars = sum(len(m.get("content", "")) for m in messages)
            logger.debug(
                f"[{request_id}] {request.provider}/{request.model} temp={request.temperature} "
                f"messages={len(messages)} chars={prompt_chars} schema={'yes' if response_schema else 'no'}"
            )

        started = time.monotonic()
        try:
            result = self.router.call(
                provider=request.provider,
                messages=messages,
                model=request.model,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                timeout=request.timeout,
                response_schema=response_schema,
            )
        except LLMProviderError as e:
            logger.error(f"[{request_id}] {request.provider}/{request.model} failed ({e.category}): {e}")
            return LLMResponse(
                content="",
                provider_used=request.provider,
                model_name=request.model,
                request_id=request_id,
                latency=time.monotonic() - started,
                success=False,
                error=e,
            )

        response = LLMResponse(
            content=result["content"],
            provider_used=request.provider,
            model_name=request.model,
            request_id=request_id,
            latency=time.monotonic() - started,
            tokens=result.get("tokens") or {},
            raw_response=result.get("raw"),
        )
        logger.info(str(response))
        return response


__all__ = [
    "LLMClient",
    "LLMResponse",
    "ResolvedRequest",
    "check_messages",
]
