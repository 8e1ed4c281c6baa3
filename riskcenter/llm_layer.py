# riskcenter/llm_layer.py
# Purpose: Provider-specific LLM implementations and routing

"""
LLM Provider Layer

One class per backend that can write a structured report:

    gemini    generateContent, responseSchema in Gemini's upper-case dialect
    ollama    /api/chat, schema passed as ``format``
    openai    /chat/completions, json_schema response_format
    lmstudio  same wire format as openai, no key

Every failure surfaces as an LLMProviderError subclass whose ``category``
the report core copies into NetworkError. Message checks, profiles and
retry live above this module.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional

import requests

from .config import APP_CONFIG, ProviderConfig


logger = logging.getLogger(__name__)


# ============================================================================
# Exceptions
# ============================================================================

class LLMProviderError(Exception):
    """Any failed provider call; ``status_code`` is set for HTTP failures."""

    category = "http"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderConnectionError(LLMProviderError):
    """DNS, refused connection or other transport failure."""
    category = "transport"


class ProviderTimeoutError(ProviderConnectionError):
    """Provider did not answer in time."""
    category = "timeout"


class ProviderAuthError(LLMProviderError):
    """Missing or rejected API key (401/403)."""
    category = "auth"


class ProviderRateLimitError(LLMProviderError):
    """HTTP 429."""
    category = "rate_limit"


class ProviderModelError(LLMProviderError):
    """HTTP 404, usually an unknown model name."""
    category = "model"


class ProviderEnvelopeError(LLMProviderError):
    """Provider answered 2xx but the response envelope has no content."""
    category = "envelope"


def _raise_for_status(response: requests.Response, provider: str, model: str) -> None:
    """Map a non-2xx response onto the provider exception hierarchy."""
    status = response.status_code
    if 200 <= status < 300:
        return

    detail = _error_detail(response)
    if status in (401, 403):
        raise ProviderAuthError(f"{provider} auth error: {detail}", status_code=status)
    if status == 429:
        raise ProviderRateLimitError(f"{provider} rate limit exceeded: {detail}", status_code=status)
    if status == 404:
        raise ProviderModelError(f"{provider} model '{model}' not found: {detail}", status_code=status)
    raise LLMProviderError(f"{provider} HTTP {status}: {detail}", status_code=status)


def _error_detail(response: requests.Response) -> str:
    """Best-effort error message out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or "Unknown error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return str(body)[:500]


def _post(url: str, provider: str, timeout: float, **kwargs) -> requests.Response:
    """POST with transport failures mapped to provider exceptions."""
    try:
        return requests.post(url, timeout=timeout, **kwargs)
    except requests.exceptions.Timeout:
        raise ProviderTimeoutError(f"{provider} request timed out after {timeout}s")
    except requests.exceptions.ConnectionError as e:
        raise ProviderConnectionError(f"Cannot connect to {provider}: {str(e)}")
    except requests.exceptions.RequestException as e:
        raise ProviderConnectionError(f"{provider} request failed: {str(e)}")


def _json_body(response: requests.Response, provider: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise ProviderEnvelopeError(f"Invalid JSON envelope from {provider}: {str(e)}")
    if not isinstance(data, dict):
        raise ProviderEnvelopeError(f"Unexpected {provider} envelope type: {type(data).__name__}")
    return data


# ============================================================================
# Base Provider Interface
# ============================================================================

class LLMProvider(ABC):
    """Common config handling; subclasses implement call()."""

    default_base_url = ""
    default_timeout = 120.0

    def __init__(self, config: Optional[ProviderConfig] = None):
        self.config = config or ProviderConfig()
        self.base_url = (self.config.base_url or self.default_base_url).rstrip("/")
        self.api_key = self.config.api_key
        self.timeout = self.config.timeout or self.default_timeout
        self.options = dict(self.config.options or {})

    @abstractmethod
    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send ``messages`` (role/content dicts) and return
        {"content": text, "tokens": {...}, "raw": envelope}.

        ``timeout`` overrides the configured one. When ``response_schema`` is
        given the provider is asked for JSON matching it. Raises an
        LLMProviderError subclass on any failure.
        """


# ============================================================================
# Gemini Provider
# ============================================================================

def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a JSON-schema descriptor into Gemini's responseSchema dialect.

    Gemini wants upper-case type names and rejects keywords it does not know,
    so only type/properties/items/required/description are carried over.
    """
    converted: Dict[str, Any] = {}
    if "type" in schema:
        converted["type"] = str(schema["type"]).upper()
    if "description" in schema:
        converted["description"] = schema["description"]
    if "properties" in schema:
        converted["properties"] = {
            name: to_gemini_schema(sub) for name, sub in schema["properties"].items()
        }
        # Gemini otherwise reorders keys alphabetically
        converted["propertyOrdering"] = list(schema["properties"].keys())
    if "items" in schema:
        converted["items"] = to_gemini_schema(schema["items"])
    if "required" in schema:
        converted["required"] = list(schema["required"])
    return converted


class GeminiProvider(LLMProvider):
    """Gemini generateContent; the key goes in the query string."""

    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    default_timeout = 60.0

    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Call Gemini generateContent."""
        if not self.api_key:
            raise ProviderAuthError("Gemini API key not configured")

        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        contents = [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [{"text": m["content"]}],
            }
            for m in messages
            if m["role"] != "system"
        ]

        generation_config: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            generation_config["maxOutputTokens"] = max_tokens
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = to_gemini_schema(response_schema)

        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": generation_config,
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_parts)}]}

        response = _post(
            f"{self.base_url}/models/{model}:generateContent",
            "Gemini",
            timeout or self.timeout,
            params={"key": self.api_key},
            headers={"Content-Type": "application/json"},
            json=payload,
        )
        _raise_for_status(response, "Gemini", model)
        data = _json_body(response, "Gemini")

        try:
            content = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ProviderEnvelopeError(
                "Invalid response structure from Gemini: no candidate text returned"
            )

        usage = data.get("usageMetadata") or {}
        tokens = {}
        if usage:
            tokens = {
                "prompt_tokens": usage.get("promptTokenCount", 0),
                "completion_tokens": usage.get("candidatesTokenCount", 0),
                "total_tokens": usage.get("totalTokenCount", 0),
            }

        return {"content": content, "tokens": tokens, "raw": data}


# ============================================================================
# Ollama Provider
# ============================================================================

class OllamaProvider(LLMProvider):
    """Local Ollama server; the JSON schema is sent as ``format``."""

    default_base_url = "http://localhost:11434"

    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Call Ollama API."""
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_ctx": self.options.get("num_ctx", 32768),
            },
        }
        if max_tokens and max_tokens > 0:
            payload["options"]["num_predict"] = max_tokens
        if response_schema is not None:
            payload["format"] = response_schema

        response = _post(f"{self.base_url}/api/chat", "Ollama", timeout or self.timeout, json=payload)
        _raise_for_status(response, "Ollama", model)
        data = _json_body(response, "Ollama")

        if "message" in data and "content" in data["message"]:
            content = data["message"]["content"]
        elif "response" in data:
            content = data["response"]
        else:
            raise ProviderEnvelopeError(f"Unexpected Ollama response format: {list(data.keys())}")

        tokens = {}
        if "prompt_eval_count" in data:
            tokens["prompt_tokens"] = data["prompt_eval_count"]
        if "eval_count" in data:
            tokens["completion_tokens"] = data["eval_count"]
        if tokens:
            tokens["total_tokens"] = tokens.get("prompt_tokens", 0) + tokens.get("completion_tokens", 0)

        return {"content": content, "tokens": tokens, "raw": data}


# ============================================================================
# OpenAI-compatible Providers
# ============================================================================

class OpenAIProvider(LLMProvider):
    """Chat-completions endpoint with a strict json_schema response_format."""

    default_base_url = "https://api.openai.com/v1"
    default_timeout = 60.0
    name = "OpenAI"
    requires_key = True

    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Call a chat-completions endpoint."""
        if self.requires_key and not self.api_key:
            raise ProviderAuthError(f"{self.name} API key not configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "structured_report", "schema": copy.deepcopy(response_schema)},
            }

        response = _post(
            f"{self.base_url}/chat/completions",
            self.name,
            timeout or self.timeout,
            headers=headers,
            json=payload,
        )
        _raise_for_status(response, self.name, model)
        data = _json_body(response, self.name)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ProviderEnvelopeError(f"Unexpected {self.name} response format: {list(data.keys())}")

        tokens = {}
        if "usage" in data:
            tokens = {
                "prompt_tokens": data["usage"].get("prompt_tokens", 0),
                "completion_tokens": data["usage"].get("completion_tokens", 0),
                "total_tokens": data["usage"].get("total_tokens", 0),
            }

        return {"content": content, "tokens": tokens, "raw": data}


class LMStudioProvider(OpenAIProvider):
    """LM Studio's local OpenAI-style server; no key required."""

    default_base_url = "http://localhost:1234/v1"
    default_timeout = 120.0
    name = "LM Studio"
    requires_key = False


# ============================================================================
# Provider Router
# ============================================================================

PROVIDER_CLASSES = {
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
    "openai": OpenAIProvider,
    "lmstudio": LMStudioProvider,
}


class ProviderRouter:
    """Name -> provider instance, created on first use from the provider configs."""

    def __init__(self, provider_configs: Optional[Dict[str, ProviderConfig]] = None):
        if provider_configs is None:
            provider_configs = APP_CONFIG.providers
        self.provider_configs = dict(provider_configs)
        self.providers: Dict[str, LLMProvider] = {}

    def _get_provider_class(self, name: str) -> type:
        if name not in PROVIDER_CLASSES:
            raise ValueError(
                f"Unknown provider '{name}'. "
                f"Available: {list(PROVIDER_CLASSES.keys())}"
            )
        return PROVIDER_CLASSES[name]

    def get(self, name: str) -> LLMProvider:
        """Provider instance for ``name``; ValueError if the name is unknown."""
        if name not in self.providers:
            provider_class = self._get_provider_class(name)
            config = self.provider_configs.get(name)
            if config is None:
                logger.warning(f"Provider '{name}' not pre-configured, initializing with defaults")
            self.providers[name] = provider_class(config)
            logger.info(f"Initialized provider: {name}")
        return self.providers[name]

    def call(
        self,
        provider: str,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Forward to the named provider; returns its {content, tokens, raw} dict."""
        return self.get(provider).call(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            response_schema=response_schema,
        )


__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderAuthError",
    "ProviderRateLimitError",
    "ProviderModelError",
    "ProviderEnvelopeError",
    "ProviderRouter",
    "GeminiProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "LMStudioProvider",
    "to_gemini_schema",
]
