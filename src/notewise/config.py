"""Settings — provider selection, cache expiration and note path rules.

Settings live in a JSON file (``~/.notewise/settings.json`` by default).
Keys written by the Obsidian plugin settings (``ollamaEndpoint``,
``cacheExpiration``, ``selectedModel``, ``selectedProvider``,
``notePathRules``) are accepted as aliases so an existing plugin
``data.json`` can be loaded directly.  Environment variables override the
file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from notewise.exceptions import ConfigurationError
from notewise.providers._protocol import ProviderKind
from notewise.providers.ollama import DEFAULT_ENDPOINT

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"
DEFAULT_CACHE_EXPIRATION_MS = 24 * 60 * 60 * 1000
DEFAULT_MODEL = "llama2"

_KEY_ALIASES = {
    "ollamaEndpoint": "endpoint",
    "cacheExpiration": "cache_expiration_ms",
    "selectedModel": "model",
    "selectedProvider": "provider",
    "notePathRules": "note_path_rules",
    "dataDir": "data_dir",
}

_ENV_OVERRIDES = {
    "NOTEWISE_PROVIDER": "provider",
    "NOTEWISE_MODEL": "model",
    "NOTEWISE_ENDPOINT": "endpoint",
    "NOTEWISE_CACHE_EXPIRATION_MS": "cache_expiration_ms",
    "NOTEWISE_DATA_DIR": "data_dir",
}


def default_config_dir() -> Path:
    """Return the directory holding settings and the embedding database."""
    return Path.home() / ".notewise"


@dataclass
class NotePathRule:
    """Move a note to *target_path* when its content contains *criteria*."""

    criteria: str
    target_path: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NotePathRule:
        target = data.get("target_path", data.get("targetPath", ""))
        return cls(criteria=str(data.get("criteria", "")), target_path=str(target))

    def to_dict(self) -> dict[str, str]:
        return {"criteria": self.criteria, "target_path": self.target_path}


@dataclass
class Settings:
    """Assistant configuration.

    Attributes:
        endpoint: Ollama server URL, or the API key when the provider is OpenAI.
        cache_expiration_ms: Age after which stored embeddings are regenerated.
            ``0`` treats every stored embedding as stale.
        model: Completion model name.
        provider: Which backend serves embeddings and completions.
        note_path_rules: Rules used to route notes into folders.
        data_dir: Where the embedding database lives.
    """

    endpoint: str = DEFAULT_ENDPOINT
    cache_expiration_ms: int = DEFAULT_CACHE_EXPIRATION_MS
    model: str = DEFAULT_MODEL
    provider: ProviderKind = ProviderKind.OLLAMA
    note_path_rules: list[NotePathRule] = field(default_factory=list)
    data_dir: Path = field(default_factory=default_config_dir)

    def __post_init__(self) -> None:
        self.provider = _parse_provider(self.provider)
        self.cache_expiration_ms = _parse_expiration(self.cache_expiration_ms)
        self.data_dir = Path(self.data_dir).expanduser()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings from a mapping, ignoring unknown keys."""
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name in _FIELD_NAMES:
                values[name] = value
        rules = values.get("note_path_rules")
        if rules is not None:
            if not isinstance(rules, list):
                raise ConfigurationError("note_path_rules must be a list")
            values["note_path_rules"] = [
                r if isinstance(r, NotePathRule) else NotePathRule.from_dict(r) for r in rules
            ]
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "cache_expiration_ms": self.cache_expiration_ms,
            "model": self.model,
            "provider": self.provider.value,
            "note_path_rules": [r.to_dict() for r in self.note_path_rules],
            "data_dir": str(self.data_dir),
        }


_FIELD_NAMES = frozenset(Settings.__dataclass_fields__)


def _parse_provider(value: Any) -> ProviderKind:
    if isinstance(value, ProviderKind):
        return value
    try:
        return ProviderKind(str(value).lower())
    except ValueError:
        choices = ", ".join(k.value for k in ProviderKind)
        msg = f"Unknown provider {value!r}; expected one of: {choices}"
        raise ConfigurationError(msg) from None


def _parse_expiration(value: Any) -> int:
    try:
        expiration = int(value)
    except (TypeError, ValueError):
        msg = f"cache_expiration_ms must be an integer, got {value!r}"
        raise ConfigurationError(msg) from None
    if expiration < 0:
        msg = f"cache_expiration_ms must be >= 0, got {expiration}"
        raise ConfigurationError(msg)
    return expiration


def load_settings(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from *path*, falling back to defaults.

    A missing file yields the defaults.  Values from ``NOTEWISE_*``
    environment variables take precedence over the file.
    """
    settings_path = Path(path) if path is not None else default_config_dir() / SETTINGS_FILENAME
    data: dict[str, Any] = {}
    if settings_path.exists():
        try:
            raw = json.loads(settings_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            msg = f"Cannot read settings from {settings_path}: {exc}"
            raise ConfigurationError(msg) from exc
        if not isinstance(raw, dict):
            msg = f"Settings file {settings_path} must contain a JSON object"
            raise ConfigurationError(msg)
        data.update(raw)
    else:
        logger.debug("No settings file at %s; using defaults", settings_path)

    env = os.environ if environ is None else environ
    for var, name in _ENV_OVERRIDES.items():
        if env.get(var):
            data[name] = env[var]
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: str | Path | None = None) -> Path:
    """Write *settings* as JSON to *path*. Returns the path written."""
    settings_path = Path(path) if path is not None else default_config_dir() / SETTINGS_FILENAME
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(settings.to_dict(), indent=2) + "\n", encoding="utf-8")
    return settings_path
