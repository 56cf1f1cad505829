"""Model providers — protocol, Ollama and OpenAI implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notewise.exceptions import ConfigurationError
from notewise.providers._protocol import ModelProvider, ProviderKind, available_models
from notewise.providers.ollama import OllamaProvider
from notewise.providers.openai import OpenAIProvider

if TYPE_CHECKING:
    from notewise.config import Settings

__all__ = [
    "ModelProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderKind",
    "available_models",
    "create_provider",
]


def create_provider(settings: Settings) -> ModelProvider:
    """Build the provider selected by *settings*.

    For Ollama the ``endpoint`` setting is the server URL; for OpenAI it
    carries the API key.
    """
    if settings.provider is ProviderKind.OLLAMA:
        return OllamaProvider(model=settings.model, endpoint=settings.endpoint)
    if settings.provider is ProviderKind.OPENAI:
        return OpenAIProvider(model=settings.model, api_key=settings.endpoint or None)
    msg = f"Unsupported model provider: {settings.provider!r}"
    raise ConfigurationError(msg)
