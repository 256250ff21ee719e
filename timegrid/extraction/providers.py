"""Clients for the hosted LLM providers used for timetable extraction.

Each provider turns a system prompt and a user prompt into the model's raw
text reply. Providers without an API key in the environment report
themselves unavailable and are skipped by the processor.
"""

import os

import requests
from openai import OpenAI

from timegrid.utils.config import LLMConfig
from timegrid.utils.logger import get_logger

logger = get_logger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class ProviderError(RuntimeError):
    """Raised when a provider call fails or returns no usable content."""


class LLMProvider:
    """Base class for an LLM provider.

    Args:
        config: LLM configuration (models, limits, key variable names).
        api_key: Explicit API key; read from the environment when omitted.
    """

    name = "base"
    key_setting = ""

    def __init__(self, config: LLMConfig, api_key: str | None = None) -> None:
        self.config = config
        env_name = getattr(config, self.key_setting, "") if self.key_setting else ""
        self.api_key = api_key if api_key is not None else os.environ.get(env_name, "")

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send the prompts and return the model's text reply.

        Raises:
            ProviderError: If the call fails or the reply is empty.
        """
        raise NotImplementedError


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions through the official SDK."""

    name = "openai"
    key_setting = "openai_key_env"

    def __init__(self, config: LLMConfig, api_key: str | None = None) -> None:
        super().__init__(config, api_key)
        self._client: OpenAI | None = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.config.timeout)
        return self._client

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.config.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as exc:
            raise ProviderError(f"OpenAI request failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ProviderError("No response from OpenAI")
        return content


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API over HTTP."""

    name = "anthropic"
    key_setting = "anthropic_key_env"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        body = {
            "model": self.config.anthropic_model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        data = _post_json(
            self.name, ANTHROPIC_URL, body, self.config.timeout, headers=headers
        )
        try:
            content = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(f"Unexpected Anthropic response shape: {exc}") from exc
        if not content:
            raise ProviderError("No response from Anthropic")
        return content


class GeminiProvider(LLMProvider):
    """Google Gemini ``generateContent`` API over HTTP."""

    name = "gemini"
    key_setting = "gemini_key_env"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }
        url = GEMINI_URL.format(model=self.config.gemini_model)
        data = _post_json(
            self.name, url, body, self.config.timeout, params={"key": self.api_key}
        )
        try:
            content = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(f"Unexpected Gemini response shape: {exc}") from exc
        if not content:
            raise ProviderError("No response from Gemini")
        return content


def _post_json(
    provider: str,
    url: str,
    body: dict,
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> dict:
    """POST a JSON body and return the decoded JSON reply.

    Raises:
        ProviderError: On transport errors, non-2xx statuses or invalid JSON.
    """
    try:
        response = requests.post(
            url, json=body, headers=headers, params=params, timeout=timeout
        )
    except requests.RequestException as exc:
        raise ProviderError(f"{provider} request failed: {exc}") from exc

    if not response.ok:
        logger.error(
            "%s API error: %s - %s", provider, response.status_code, response.text[:500]
        )
        raise ProviderError(f"{provider} API error: {response.status_code}")

    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(f"{provider} returned invalid JSON: {exc}") from exc


PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    AnthropicProvider.name: AnthropicProvider,
    GeminiProvider.name: GeminiProvider,
}


def build_providers(config: LLMConfig) -> list[LLMProvider]:
    """Instantiate providers in the configured priority order.

    Unknown provider names are logged and ignored.
    """
    providers: list[LLMProvider] = []
    for name in config.providers:
        provider_cls = PROVIDER_CLASSES.get(name.lower())
        if provider_cls is None:
            logger.warning("Unknown LLM provider %r in configuration, skipping", name)
            continue
        providers.append(provider_cls(config))
    return providers
