"""AI provider clients behind a single review interface."""

import logging
from abc import ABC, abstractmethod

from anthropic import Anthropic, AnthropicError
from google import genai
from google.genai import errors as genai_errors
from openai import OpenAI, OpenAIError

from config import USE_MOCK, ReviewConfig
from errors import ConfigError, ProviderError, ResponseParseError
from mock_data import MOCK_RESPONSE
from prompts import SYSTEM_PROMPT, build_review_prompt
from response_parser import parse_review_response

logger = logging.getLogger(__name__)

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20241022",
    "gemini": "gemini-2.5-flash-lite",
    "mock": "mock",
}


class ReviewProvider(ABC):
    """
    Base provider: prompt assembly and response parsing are shared.

    Subclasses only implement ``complete``, which sends a prompt and returns
    the model's raw text.
    """

    name = "provider"

    @abstractmethod
    def complete(self, prompt: str, config: ReviewConfig) -> str:
        """Send *prompt* to the model and return its raw text."""

    def model_for(self, config: ReviewConfig) -> str:
        return config.model or DEFAULT_MODELS[config.ai_provider]

    def review(self, code: str, prompt: str, config: ReviewConfig) -> list[dict]:
        """
        Review *code* and return comment candidates (not yet validated).

        Raises:
            ProviderError: If the API call fails or returns nothing
            ResponseParseError: If the response cannot be parsed
        """
        text = self.complete(build_review_prompt(code, prompt), config)

        parsed = parse_review_response(text)
        if not parsed.ok:
            logger.debug("Raw %s response: %s", self.name, text)
            raise ResponseParseError(f"{self.name} returned an unusable response: {parsed.error}")

        logger.debug("%s: %d candidate(s) via %s", self.name, len(parsed.comments), parsed.source)
        return parsed.comments


class OpenAIProvider(ReviewProvider):
    name = "OpenAI"

    def __init__(self, api_key: str):
        self.client = OpenAI(api_key=api_key)

    def complete(self, prompt: str, config: ReviewConfig) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model_for(config),
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            )
        except OpenAIError as e:
            logger.error("OpenAI API error: %s", e)
            raise ProviderError(f"OpenAI review failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError("OpenAI review failed: No response from OpenAI")
        return content


class AnthropicProvider(ReviewProvider):
    name = "Anthropic"

    def __init__(self, api_key: str):
        self.client = Anthropic(api_key=api_key)

    def complete(self, prompt: str, config: ReviewConfig) -> str:
        try:
            response = self.client.messages.create(
                model=self.model_for(config),
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except AnthropicError as e:
            logger.error("Anthropic API error: %s", e)
            raise ProviderError(f"Anthropic review failed: {e}") from e

        if not response.content or response.content[0].type != "text":
            raise ProviderError(
                "Anthropic review failed: Unexpected response type from Anthropic"
            )
        return response.content[0].text


class GeminiProvider(ReviewProvider):
    name = "Gemini"

    def __init__(self, api_key: str):
        self.client = genai.Client(api_key=api_key)

    def complete(self, prompt: str, config: ReviewConfig) -> str:
        try:
            response = self.client.models.generate_content(
                model=self.model_for(config),
                contents=prompt,
                config={
                    "system_instruction": SYSTEM_PROMPT,
                    "max_output_tokens": config.max_tokens,
                    "temperature": config.temperature,
                },
            )
        except genai_errors.APIError as e:
            logger.error("Gemini API error: %s", e)
            raise ProviderError(f"Gemini review failed: {e}") from e

        if not response.text:
            raise ProviderError("Gemini review failed: No response from Gemini")
        return response.text


class MockProvider(ReviewProvider):
    """Offline provider returning a canned response. No API calls."""

    name = "Mock"

    def __init__(self, response: str = MOCK_RESPONSE):
        self.response = response

    def complete(self, prompt: str, config: ReviewConfig) -> str:
        logger.info("[MOCK MODE - No API call made]")
        return self.response


_PROVIDERS: dict[str, type[ReviewProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}


def create_provider(config: ReviewConfig, api_key: str | None = None) -> ReviewProvider:
    """
    Create the provider selected by ``config.ai_provider``.

    The API key is passed in by the caller (see ``config.resolve_api_key``);
    this function never reads the environment for it.

    Raises:
        ConfigError: If the provider is unknown or the key is missing
    """
    if USE_MOCK or config.ai_provider == "mock":
        return MockProvider()

    provider_cls = _PROVIDERS.get(config.ai_provider)
    if provider_cls is None:
        raise ConfigError(f"Unsupported AI provider: {config.ai_provider}")
    if not api_key:
        raise ConfigError(f"API key is required for {config.ai_provider} provider")

    return provider_cls(api_key)
