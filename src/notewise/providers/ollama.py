"""OllamaProvider — async model provider for a local Ollama server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from notewise.exceptions import ModelProviderError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:11434"


class OllamaProvider:
    """Model provider talking to Ollama's HTTP API.

    ``POST /api/embeddings`` for vectors and ``POST /api/generate`` (non
    streaming) for completions.  One ``httpx.AsyncClient`` is shared by
    all calls; pass *client* to inject a preconfigured one.
    """

    def __init__(
        self,
        *,
        model: str = "llama2",
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self.endpoint = endpoint.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    # ------------------------------------------------------------------
    # ModelProvider protocol
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed *text* with the configured model."""
        data = await self._post("/api/embeddings", {"model": self._model, "prompt": text})
        embedding = data.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise ModelProviderError("Ollama returned no embedding")
        try:
            return [float(v) for v in embedding]
        except (TypeError, ValueError) as exc:
            raise ModelProviderError("Ollama returned a non-numeric embedding") from exc

    async def complete(self, prompt: str) -> str:
        """Generate text for *prompt* with the configured model."""
        data = await self._post(
            "/api/generate",
            {"model": self._model, "prompt": prompt, "stream": False},
        )
        response = data.get("response")
        if not isinstance(response, str):
            raise ModelProviderError("Ollama returned no response text")
        return response.strip()

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self._model

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.endpoint}{path}"
        logger.debug("POST %s", url)
        try:
            response = await self._client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Ollama request to %s failed: %s", url, exc)
            msg = f"Ollama returned HTTP {exc.response.status_code} for {path}"
            raise ModelProviderError(msg) from exc
        except httpx.HTTPError as exc:
            logger.error("Ollama request to %s failed: %s", url, exc)
            msg = f"Cannot reach Ollama at {self.endpoint}. Is Ollama running?"
            raise ModelProviderError(msg) from exc
        except ValueError as exc:
            raise ModelProviderError(f"Ollama returned invalid JSON for {path}") from exc
        if not isinstance(data, dict):
            raise ModelProviderError(f"Ollama returned an unexpected payload for {path}")
        return data
