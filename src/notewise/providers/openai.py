"""OpenAIProvider — async model provider backed by OpenAI's API."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from openai import AsyncOpenAI, OpenAIError

from notewise.exceptions import ConfigurationError, ModelProviderError

if TYPE_CHECKING:
    from openai import AsyncOpenAI as AsyncOpenAIType

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"


class OpenAIProvider:
    """Model provider backed by the OpenAI Embeddings and Chat APIs.

    Uses ``AsyncOpenAI`` for native async I/O.  Completions send the
    prompt as a single user message and return the stripped reply.
    """

    def __init__(
        self,
        *,
        model: str = "gpt-3.5-turbo",
        embedding_model: str = DEFAULT_EMBEDDING_MODEL,
        api_key: str | None = None,
        max_retries: int = 2,
        timeout: float = 60.0,
    ) -> None:
        resolved_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not resolved_key:
            msg = (
                "No OpenAI API key provided. Set the endpoint setting to your key "
                "or set the OPENAI_API_KEY environment variable."
            )
            raise ConfigurationError(msg)

        self._model = model
        self._embedding_model = embedding_model
        self._client: AsyncOpenAIType = AsyncOpenAI(
            api_key=resolved_key,
            max_retries=max_retries,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # ModelProvider protocol
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string via the OpenAI API."""
        try:
            response = await self._client.embeddings.create(
                input=[text],
                model=self._embedding_model,
            )
        except OpenAIError as exc:
            logger.error("Failed to generate OpenAI embedding: %s", exc)
            raise ModelProviderError(f"OpenAI embedding request failed: {exc}") from exc

        if not response.data:
            raise ModelProviderError("OpenAI returned no embedding data")
        return list(response.data[0].embedding)

    async def complete(self, prompt: str) -> str:
        """Run a chat completion with *prompt* as the only user message."""
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            logger.error("Failed to generate OpenAI text: %s", exc)
            raise ModelProviderError(f"OpenAI completion request failed: {exc}") from exc

        if not response.choices or response.choices[0].message.content is None:
            raise ModelProviderError("OpenAI returned an empty completion")
        return response.choices[0].message.content.strip()

    @property
    def model_name(self) -> str:
        """Return the completion model name."""
        return self._model

    @property
    def embedding_model(self) -> str:
        """Return the embedding model name."""
        return self._embedding_model

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.close()
