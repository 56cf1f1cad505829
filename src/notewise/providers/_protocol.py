"""ModelProvider protocol and provider identities."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable


class ProviderKind(str, Enum):
    """Backends a :class:`ModelProvider` can be built for."""

    OLLAMA = "ollama"
    OPENAI = "openai"


_AVAILABLE_MODELS: dict[ProviderKind, list[str]] = {
    ProviderKind.OLLAMA: ["llama2", "gpt4all", "bloom"],
    ProviderKind.OPENAI: ["gpt-3.5-turbo", "gpt-4"],
}


def available_models(kind: ProviderKind) -> list[str]:
    """Return the completion models offered for *kind*."""
    return list(_AVAILABLE_MODELS.get(kind, []))


@runtime_checkable
class ModelProvider(Protocol):
    """Async-first protocol for the language model backend.

    Implementations turn one text into a fixed-dimension float vector and
    one prompt into generated text.  Transport failures are raised as
    :class:`~notewise.exceptions.ModelProviderError`.
    """

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string into a vector."""
        ...

    async def complete(self, prompt: str) -> str:
        """Generate a completion for *prompt*."""
        ...

    @property
    def model_name(self) -> str:
        """Name of the completion model."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
