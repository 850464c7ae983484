from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from vrtl_engine.config import Settings
from vrtl_engine.llm.providers.anthropic_adapter import AnthropicAdapter
from vrtl_engine.llm.providers.base import Provider, ProviderError
from vrtl_engine.llm.providers.gemini_adapter import GeminiAdapter
from vrtl_engine.llm.providers.openai_adapter import OpenAIAdapter

ANSWER = '{"client_mentioned": true}'


def _http_response(status: int, url: str, text: str) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url), text=text)


# ----------------------------------------------------------------------
# OpenAI
# ----------------------------------------------------------------------

def test_openai_sends_json_mode_and_temperature_zero():
    """
    WHY: The extraction relies on JSON mode and reproducible sampling.
    HOW: Run the adapter against a mocked SDK client.
    EXPECTED: System + user messages, json_object format, temperature 0, raw text untouched.
    """
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=ANSWER))]
    )
    adapter = OpenAIAdapter(api_key="sk-test", model="gpt-4o-mini", client=client)

    result = adapter.run("SYSTEM", "USER")

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["messages"] == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "USER"},
    ]
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["temperature"] == 0
    assert result.raw_text == ANSWER
    assert result.model_used == "gpt-4o-mini"
    assert result.latency_ms >= 0


def test_openai_model_override():
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=ANSWER))]
    )
    result = OpenAIAdapter(api_key="sk-test", client=client).run("S", "U", model_override="gpt-4o")
    assert client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o"
    assert result.model_used == "gpt-4o"


def test_openai_status_error_maps_to_provider_error():
    client = MagicMock()
    resp = _http_response(429, "https://api.openai.com/v1/chat/completions", '{"error": "slow down"}')
    client.chat.completions.create.side_effect = openai.RateLimitError("rate limited", response=resp, body=None)

    with pytest.raises(ProviderError) as exc:
        OpenAIAdapter(api_key="sk-test", client=client).run("S", "U")
    assert exc.value.status == 429
    assert "slow down" in exc.value.body


def test_openai_transport_error_maps_to_provider_error():
    client = MagicMock()
    client.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )
    with pytest.raises(ProviderError) as exc:
        OpenAIAdapter(api_key="sk-test", client=client).run("S", "U")
    assert exc.value.status is None


def test_openai_malformed_envelope():
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(choices=[])
    with pytest.raises(ProviderError, match="malformed"):
        OpenAIAdapter(api_key="sk-test", client=client).run("S", "U")


def test_openai_from_settings_requires_key():
    with pytest.raises(ProviderError):
        OpenAIAdapter.from_settings(Settings(_env_file=None, OPENAI_API_KEY=None))


# ----------------------------------------------------------------------
# Anthropic
# ----------------------------------------------------------------------

def test_anthropic_joins_text_blocks_and_uses_system_field():
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=[
        SimpleNamespace(type="text", text='{"client_mentioned": '),
        SimpleNamespace(type="tool_use", text=None),
        SimpleNamespace(type="text", text="true}"),
    ])
    adapter = AnthropicAdapter(api_key="sk-ant", model="claude-test", client=client)

    result = adapter.run("SYSTEM", "USER")

    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["system"] == "SYSTEM"
    assert kwargs["messages"] == [{"role": "user", "content": "USER"}]
    assert kwargs["max_tokens"] == 800
    assert kwargs["temperature"] == 0
    assert result.raw_text == ANSWER
    assert result.model_used == "claude-test"


def test_anthropic_status_error_maps_to_provider_error():
    client = MagicMock()
    resp = _http_response(529, "https://api.anthropic.com/v1/messages", "overloaded")
    client.messages.create.side_effect = anthropic.APIStatusError("overloaded", response=resp, body=None)

    with pytest.raises(ProviderError) as exc:
        AnthropicAdapter(api_key="sk-ant", client=client).run("S", "U")
    assert exc.value.status == 529
    assert exc.value.body == "overloaded"


def test_anthropic_missing_content_is_malformed():
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=None)
    with pytest.raises(ProviderError, match="malformed"):
        AnthropicAdapter(api_key="sk-ant", client=client).run("S", "U")


def test_anthropic_key_aliases(monkeypatch):
    """
    WHY: Deployments name the Anthropic key in several ways.
    HOW: Build settings from the CLAUDE_API_KEY alias only.
    EXPECTED: The adapter factory accepts it.
    """
    for var in ("ANTHROPIC_API_KEY", "ANTHROPIC_KEY", "CLAUDE_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None, CLAUDE_API_KEY="sk-alias")
    assert settings.ANTHROPIC_API_KEY == "sk-alias"
    adapter = AnthropicAdapter.from_settings(settings)
    assert adapter.provider == Provider.ANTHROPIC


# ----------------------------------------------------------------------
# Gemini
# ----------------------------------------------------------------------

def test_gemini_inlines_system_and_requests_json():
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(candidates=[
        SimpleNamespace(content=SimpleNamespace(parts=[
            SimpleNamespace(text='{"client_mentioned": '),
            SimpleNamespace(text="true}"),
        ]))
    ])
    adapter = GeminiAdapter(api_key="g-key", model="gemini-test", client=client)

    result = adapter.run("SYSTEM", "USER")

    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    assert kwargs["contents"] == "SYSTEM\n\nUSER"
    assert kwargs["config"].temperature == 0
    assert kwargs["config"].response_mime_type == "application/json"
    assert result.raw_text == ANSWER


def test_gemini_api_error_maps_to_provider_error():
    client = MagicMock()
    client.models.generate_content.side_effect = genai_errors.ClientError(
        400, {"error": {"code": 400, "message": "bad request", "status": "INVALID_ARGUMENT"}}
    )
    with pytest.raises(ProviderError) as exc:
        GeminiAdapter(api_key="g-key", client=client).run("S", "U")
    assert exc.value.status == 400


def test_gemini_transport_error_maps_to_provider_error():
    client = MagicMock()
    client.models.generate_content.side_effect = httpx.ConnectError("boom")
    with pytest.raises(ProviderError):
        GeminiAdapter(api_key="g-key", client=client).run("S", "U")


def test_gemini_no_candidates_is_malformed():
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(candidates=[])
    with pytest.raises(ProviderError, match="malformed"):
        GeminiAdapter(api_key="g-key", client=client).run("S", "U")
