"""
OpenAI-compatible completion service.

Connects to Ollama by default, or any endpoint that speaks the OpenAI chat
completions API.
"""

import logging
from typing import Any, cast

import openai
from openai import AsyncOpenAI

from featureforge.config import LLMConfig
from featureforge.domain.exceptions import ExternalServiceError
from featureforge.domain.interfaces import CompletionServiceInterface

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an agent of a feature delivery pipeline. "
    "Answer with structured JSON only."
)


class OpenAICompletionService(CompletionServiceInterface):
    """Completion service backed by ``openai.AsyncOpenAI``."""

    config_class = LLMConfig

    def __init__(self, config: LLMConfig | None = None, **kwargs: Any):
        """
        Args:
            config: Typed configuration object (preferred)
            **kwargs: Field overrides used when no config is given
        """
        if config is None:
            config = LLMConfig(**kwargs)

        self._config = config
        self._client = AsyncOpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.timeout,
        )

    @property
    def model(self) -> str:
        return self._config.model

    async def complete(self, prompt: str, system_prompt: str | None = None) -> str:
        messages = [
            {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=cast(Any, messages),
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
            )
        except openai.APITimeoutError as e:
            raise ExternalServiceError(
                f"Completion timed out after {self._config.timeout}s"
            ) from e
        except openai.OpenAIError as e:
            raise ExternalServiceError(f"Completion request failed: {e}") from e

        if not response.choices:
            raise ExternalServiceError("Completion returned no choices")

        content = response.choices[0].message.content or ""
        if not content.strip():
            raise ExternalServiceError("Completion returned empty content")

        logger.debug("Completion from %s: %d chars", self._config.model, len(content))
        return content

    async def close(self) -> None:
        await self._client.close()
