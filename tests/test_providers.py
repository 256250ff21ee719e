"""Tests for the hosted LLM provider clients (HTTP and SDK mocked)."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from timegrid.extraction.providers import (
    ANTHROPIC_URL,
    AnthropicProvider,
    GeminiProvider,
    OpenAIProvider,
    ProviderError,
    build_providers,
)
from timegrid.utils.config import LLMConfig


def _response(payload: object = None, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.text = "error body"
    response.json.return_value = payload
    return response


class TestAvailability:
    """Tests for API key lookup."""

    def test_reads_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        provider = AnthropicProvider(LLMConfig())
        assert provider.api_key == "sk-ant"
        assert provider.available

    def test_missing_key_unavailable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        assert not GeminiProvider(LLMConfig()).available

    def test_custom_variable_name(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_OPENAI", "sk-1")
        provider = OpenAIProvider(LLMConfig(openai_key_env="MY_OPENAI"))
        assert provider.api_key == "sk-1"

    def test_explicit_key_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert OpenAIProvider(LLMConfig(), api_key="explicit").api_key == "explicit"


class TestOpenAIProvider:
    """Tests for the OpenAI SDK client."""

    @patch("timegrid.extraction.providers.OpenAI")
    def test_complete(self, mock_openai: MagicMock) -> None:
        completion = MagicMock()
        completion.choices = [MagicMock()]
        completion.choices[0].message.content = '{"timeblocks": []}'
        mock_openai.return_value.chat.completions.create.return_value = completion

        provider = OpenAIProvider(LLMConfig(), api_key="sk-test")
        assert provider.complete("system", "user") == '{"timeblocks": []}'

        mock_openai.assert_called_once_with(api_key="sk-test", timeout=60.0)
        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo"
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 4000
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    @patch("timegrid.extraction.providers.OpenAI")
    def test_empty_reply(self, mock_openai: MagicMock) -> None:
        completion = MagicMock()
        completion.choices = []
        mock_openai.return_value.chat.completions.create.return_value = completion

        with pytest.raises(ProviderError, match="No response"):
            OpenAIProvider(LLMConfig(), api_key="sk").complete("s", "u")

    @patch("timegrid.extraction.providers.OpenAI")
    def test_sdk_error_wrapped(self, mock_openai: MagicMock) -> None:
        mock_openai.return_value.chat.completions.create.side_effect = Exception("quota")
        with pytest.raises(ProviderError, match="quota"):
            OpenAIProvider(LLMConfig(), api_key="sk").complete("s", "u")


class TestAnthropicProvider:
    """Tests for the Anthropic HTTP client."""

    @patch("timegrid.extraction.providers.requests.post")
    def test_complete(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"content": [{"type": "text", "text": "{}"}]})

        reply = AnthropicProvider(LLMConfig(), api_key="sk-ant").complete("sys", "usr")

        assert reply == "{}"
        args, kwargs = mock_post.call_args
        assert args[0] == ANTHROPIC_URL
        assert kwargs["headers"]["x-api-key"] == "sk-ant"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        assert kwargs["json"]["system"] == "sys"
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "usr"}]
        assert kwargs["json"]["model"] == "claude-3-5-sonnet-20241022"

    @patch("timegrid.extraction.providers.requests.post")
    def test_http_error(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response(status=529)
        with pytest.raises(ProviderError, match="529"):
            AnthropicProvider(LLMConfig(), api_key="k").complete("s", "u")

    @patch("timegrid.extraction.providers.requests.post")
    def test_unexpected_shape(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"content": []})
        with pytest.raises(ProviderError, match="response shape"):
            AnthropicProvider(LLMConfig(), api_key="k").complete("s", "u")

    @patch("timegrid.extraction.providers.requests.post")
    def test_transport_error(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ProviderError, match="request failed"):
            AnthropicProvider(LLMConfig(), api_key="k").complete("s", "u")


class TestGeminiProvider:
    """Tests for the Gemini HTTP client."""

    @patch("timegrid.extraction.providers.requests.post")
    def test_complete(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response(
            {"candidates": [{"content": {"parts": [{"text": "reply"}]}}]}
        )

        reply = GeminiProvider(LLMConfig(), api_key="g-key").complete("sys", "usr")

        assert reply == "reply"
        args, kwargs = mock_post.call_args
        assert "gemini-1.5-flash:generateContent" in args[0]
        assert kwargs["params"] == {"key": "g-key"}
        assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "sys\n\nusr"
        assert kwargs["json"]["generationConfig"]["maxOutputTokens"] == 4000

    @patch("timegrid.extraction.providers.requests.post")
    def test_invalid_json(self, mock_post: MagicMock) -> None:
        response = _response()
        response.json.side_effect = ValueError("not json")
        mock_post.return_value = response
        with pytest.raises(ProviderError, match="invalid JSON"):
            GeminiProvider(LLMConfig(), api_key="k").complete("s", "u")


class TestBuildProviders:
    """Tests for provider construction."""

    def test_default_order(self) -> None:
        names = [p.name for p in build_providers(LLMConfig())]
        assert names == ["openai", "anthropic", "gemini"]

    def test_custom_order_and_unknown_names(self) -> None:
        config = LLMConfig(providers=["Gemini", "mistral", "openai"])
        assert [p.name for p in build_providers(config)] == ["gemini", "openai"]
