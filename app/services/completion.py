"""
Chat completion service.

Thin wrapper over the OpenAI chat completions API. Calls are single-attempt:
the client is built without retries and any failure is raised as an
UpstreamError carrying the upstream message.
"""

from typing import Any, Optional, Protocol

import openai
from loguru import logger
from openai import AsyncOpenAI

from app.config import OpenAISettings
from app.errors import UpstreamError

Message = dict[str, Any]


class CompletionClient(Protocol):
    """Anything that turns a message list into generated text."""

    async def complete(
        self,
        messages: list[Message],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]: ...


class OpenAICompletionClient:
    """
    OpenAI-backed completion client.

    Returns the first choice's message content verbatim (None if the model
    returned an empty message).
    """

    def __init__(self, settings: OpenAISettings):
        self.settings = settings
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of the OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.api_key)

    async def complete(
        self,
        messages: list[Message],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        """
        Run one chat completion.

        Raises:
            UpstreamError: On network errors, non-success statuses or a
                           response without choices
        """
        model = model or self.settings.diet_model
        logger.info(f"Calling OpenAI chat completions (model={model})")

        try:
            # Building the client fails with OpenAIError when no API key is set
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.settings.temperature if temperature is None else temperature,
                max_tokens=max_tokens or self.settings.max_tokens,
            )
        except openai.APIStatusError as e:
            logger.error(f"OpenAI returned HTTP {e.status_code}: {e.message}")
            raise UpstreamError(e.message, details=repr(e)) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise UpstreamError(str(e) or type(e).__name__, details=repr(e)) from e

        if not response.choices:
            raise UpstreamError("Completion response contained no choices")

        logger.info("OpenAI response received")
        return response.choices[0].message.content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
