from dataclasses import replace

import pytest
import requests

from riskcenter import llm_layer
from riskcenter.config import APP_CONFIG, ProviderConfig
from riskcenter.llm_abstraction import LLMClient
from riskcenter.llm_layer import (
    GeminiProvider,
    OllamaProvider,
    OpenAIProvider,
    ProviderEnvelopeError,
    ProviderRouter,
    to_gemini_schema,
)
from riskcenter.risk_agent.errors import NetworkError
from riskcenter.risk_agent.generation_client import LLMGenerationClient
from riskcenter.risk_agent.prompt_builder import PromptBuilder
from riskcenter.risk_agent.report_contract import ReportContract


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class RecordingPost:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def __call__(self, url, timeout=None, **kwargs):
        self.calls.append({"url": url, "timeout": timeout, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response


def _gemini_body(text):
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15},
    }


MESSAGES = [
    {"role": "system", "content": "Return JSON."},
    {"role": "user", "content": "Analyze this."},
]


@pytest.fixture
def gemini():
    return GeminiProvider(ProviderConfig(base_url="https://gemini.test/v1beta", api_key="k", timeout=5.0))


def test_gemini_payload_carries_schema(monkeypatch, gemini):
    post = RecordingPost(FakeResponse(body=_gemini_body('{"ok": true}')))
    monkeypatch.setattr(llm_layer.requests, "post", post)

    result = gemini.call(MESSAGES, "gemini-2.5-flash", 0.2, None, None, {"type": "object", "properties": {}})

    call = post.calls[0]
    assert call["url"] == "https://gemini.test/v1beta/models/gemini-2.5-flash:generateContent"
    assert call["params"] == {"key": "k"}
    assert call["timeout"] == 5.0
    payload = call["json"]
    assert payload["systemInstruction"] == {"parts": [{"text": "Return JSON."}]}
    assert payload["contents"] == [{"role": "user", "parts": [{"text": "Analyze this."}]}]
    assert payload["generationConfig"]["temperature"] == 0.2
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert payload["generationConfig"]["responseSchema"]["type"] == "OBJECT"
    assert result["content"] == '{"ok": true}'
    assert result["tokens"]["total_tokens"] == 15


def test_gemini_missing_candidates_is_envelope_error(monkeypatch, gemini):
    monkeypatch.setattr(llm_layer.requests, "post", RecordingPost(FakeResponse(body={"candidates": []})))

    with pytest.raises(ProviderEnvelopeError):
        gemini.call(MESSAGES, "m", 0.2, None, None)


def test_gemini_requires_api_key():
    provider = GeminiProvider(ProviderConfig(base_url="https://gemini.test", api_key=""))

    with pytest.raises(llm_layer.ProviderAuthError):
        provider.call(MESSAGES, "m", 0.2, None, None)


@pytest.mark.parametrize("status, error_class, category", [
    (401, llm_layer.ProviderAuthError, "auth"),
    (429, llm_layer.ProviderRateLimitError, "rate_limit"),
    (404, llm_layer.ProviderModelError, "model"),
    (503, llm_layer.LLMProviderError, "http"),
])
def test_http_status_mapping(monkeypatch, gemini, status, error_class, category):
    body = {"error": {"message": "nope"}}
    monkeypatch.setattr(llm_layer.requests, "post", RecordingPost(FakeResponse(status, body)))

    with pytest.raises(error_class) as info:
        gemini.call(MESSAGES, "m", 0.2, None, None)

    assert info.value.category == category
    assert info.value.status_code == status
    assert "nope" in str(info.value)


def test_transport_timeout_mapping(monkeypatch, gemini):
    monkeypatch.setattr(llm_layer.requests, "post", RecordingPost(exc=requests.exceptions.Timeout()))

    with pytest.raises(llm_layer.ProviderTimeoutError) as info:
        gemini.call(MESSAGES, "m", 0.2, None, None)

    assert info.value.category == "timeout"


def test_connection_error_mapping(monkeypatch, gemini):
    monkeypatch.setattr(llm_layer.requests, "post", RecordingPost(exc=requests.exceptions.ConnectionError("refused")))

    with pytest.raises(llm_layer.ProviderConnectionError) as info:
        gemini.call(MESSAGES, "m", 0.2, None, None)

    assert info.value.category == "transport"


def test_to_gemini_schema_drops_unknown_keywords():
    schema = ReportContract().schema_descriptor()

    converted = to_gemini_schema(schema)

    assert converted["type"] == "OBJECT"
    assert converted["propertyOrdering"] == ["step1", "step2", "step3", "step4", "step5", "step6"]
    assert "additionalProperties" not in converted
    step1_content = converted["properties"]["step1"]["properties"]["content"]
    assert step1_content["type"] == "ARRAY"
    assert "minItems" not in step1_content
    assert step1_content["items"]["type"] == "OBJECT"


def test_ollama_puts_schema_in_format(monkeypatch):
    post = RecordingPost(FakeResponse(body={"message": {"content": "{}"}, "prompt_eval_count": 3, "eval_count": 2}))
    monkeypatch.setattr(llm_layer.requests, "post", post)
    provider = OllamaProvider(ProviderConfig(base_url="http://ollama.test"))

    result = provider.call(MESSAGES, "qwen", 0.2, None, None, {"type": "object"})

    assert post.calls[0]["url"] == "http://ollama.test/api/chat"
    assert post.calls[0]["json"]["format"] == {"type": "object"}
    assert result["tokens"] == {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}


def test_openai_uses_json_schema_response_format(monkeypatch):
    body = {"choices": [{"message": {"content": "{}"}}]}
    post = RecordingPost(FakeResponse(body=body))
    monkeypatch.setattr(llm_layer.requests, "post", post)
    provider = OpenAIProvider(ProviderConfig(base_url="https://openai.test/v1", api_key="sk"))

    provider.call(MESSAGES, "gpt", 0.2, None, None, {"type": "object"})

    call = post.calls[0]
    assert call["headers"]["Authorization"] == "Bearer sk"
    assert call["json"]["response_format"]["json_schema"]["name"] == "structured_report"


def test_router_rejects_unknown_provider():
    with pytest.raises(ValueError):
        ProviderRouter({}).get("nope")


def test_llm_client_resolves_profile(monkeypatch):
    config = replace(APP_CONFIG, llm_profiles={
        "report": {"provider": "gemini", "model": "gemini-2.5-flash", "temperature": 0.2, "timeout": 60.0},
    })
    router = ProviderRouter({"gemini": ProviderConfig(base_url="https://gemini.test", api_key="k")})
    post = RecordingPost(FakeResponse(body=_gemini_body("{}")))
    monkeypatch.setattr(llm_layer.requests, "post", post)

    response = LLMClient(router=router, config=config).generate(MESSAGES, profile="report")

    assert response.success
    assert response.provider_used == "gemini"
    assert response.model_name == "gemini-2.5-flash"
    assert post.calls[0]["timeout"] == 60.0
    assert post.calls[0]["json"]["generationConfig"]["temperature"] == 0.2


def test_llm_client_rejects_bad_messages():
    with pytest.raises(ValueError):
        LLMClient(router=ProviderRouter({})).generate([{"role": "tool", "content": "x"}], provider="gemini", model="m")


def test_generation_client_maps_provider_failure(monkeypatch, corpus):
    config = replace(APP_CONFIG, llm_profiles={"report": {"provider": "gemini", "model": "m"}})
    router = ProviderRouter({"gemini": ProviderConfig(base_url="https://gemini.test", api_key="k")})
    monkeypatch.setattr(llm_layer.requests, "post", RecordingPost(FakeResponse(429, {"error": "slow down"})))
    client = LLMGenerationClient(LLMClient(router=router, config=config), profile="report")

    result = client.generate(PromptBuilder().build("issue", corpus), ReportContract())

    assert isinstance(result.error, NetworkError)
    assert result.error.category == "rate_limit"
    assert result.error.status_code == 429


def test_generation_client_maps_unknown_profile(corpus):
    client = LLMGenerationClient(LLMClient(router=ProviderRouter({})), profile="missing")

    result = client.generate(PromptBuilder().build("issue", corpus), ReportContract())

    assert isinstance(result.error, NetworkError)
    assert result.error.category == "config"


def test_generation_client_returns_raw_text(monkeypatch, corpus):
    config = replace(APP_CONFIG, llm_profiles={"report": {"provider": "gemini", "model": "m"}})
    router = ProviderRouter({"gemini": ProviderConfig(base_url="https://gemini.test", api_key="k")})
    post = RecordingPost(FakeResponse(body=_gemini_body('{"step1": {}}')))
    monkeypatch.setattr(llm_layer.requests, "post", post)
    client = LLMGenerationClient(LLMClient(router=router, config=config), profile="report", temperature=0.2)

    result = client.generate(PromptBuilder().build("issue", corpus), ReportContract())

    assert result.unwrap() == '{"step1": {}}'
    assert post.calls[0]["json"]["generationConfig"]["responseSchema"]["type"] == "OBJECT"


def test_explicit_arguments_override_profile():
    config = replace(APP_CONFIG, llm_profiles={
        "report": {"provider": "gemini", "model": "gemini-2.5-flash", "temperature": 0.2, "timeout": 60.0},
    })
    client = LLMClient(router=ProviderRouter({}), config=config)

    request = client.resolve(model="other", profile="report", temperature=0.0)

    assert request.provider == "gemini"
    assert request.model == "other"
    assert request.temperature == 0.0
    assert request.timeout == 60.0


def test_resolve_without_provider_is_value_error():
    with pytest.raises(ValueError):
        LLMClient(router=ProviderRouter({})).resolve(model="m")
