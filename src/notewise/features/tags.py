"""TagSuggester — ask the model for tags and merge them into frontmatter."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import yaml

from notewise.features._output import parse_json_output
from notewise.features.prompts import TAGS_PROMPT

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notewise.documents.protocol import DocumentStore
    from notewise.providers._protocol import ModelProvider

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---\r?\n?", re.DOTALL)


def _normalize_tag(tag: Any) -> str:
    return str(tag).strip().lstrip("#").strip()


def _unique(tags: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for tag in tags:
        if tag and tag not in seen:
            seen.add(tag)
            out.append(tag)
    return out


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Return ``(frontmatter, body)``; frontmatter is ``{}`` when absent.

    Raises ``ValueError`` when a frontmatter block exists but is not a
    YAML mapping.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return {}, content
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ValueError(f"Frontmatter is not valid YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Frontmatter must be a YAML mapping")
    return data, content[match.end() :]


def add_tags(content: str, tags: Iterable[str]) -> str:
    """Merge *tags* into the ``tags`` list of *content*'s frontmatter.

    Existing tags come first and keep their order; duplicates are dropped.
    A frontmatter block is created when the note has none.
    """
    frontmatter, body = split_frontmatter(content)
    existing = frontmatter.get("tags") or []
    if isinstance(existing, str):
        existing = [t for t in re.split(r"[,\s]+", existing) if t]
    merged = _unique(_normalize_tag(t) for t in [*existing, *tags])
    frontmatter["tags"] = merged
    dumped = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n{body}"


class TagSuggester:
    """Suggests tags for note content."""

    def __init__(self, provider: ModelProvider) -> None:
        self._provider = provider

    async def suggest_tags(self, content: str) -> list[str]:
        """Return suggested tags; ``[]`` when the model answers with a non-list."""
        response = await self._provider.complete(TAGS_PROMPT.format(content=content))
        parsed = parse_json_output(response, "tags")
        if not isinstance(parsed, list):
            logger.warning("Tag suggestion was not a JSON array; ignoring it")
            return []
        return _unique(_normalize_tag(t) for t in parsed if isinstance(t, (str, int, float)))

    async def apply_tags(
        self, documents: DocumentStore, document_id: str, tags: Iterable[str]
    ) -> str:
        """Write *tags* into the frontmatter of *document_id*; returns the new content."""
        content = await documents.read_text(document_id)
        updated = add_tags(content, tags)
        await documents.write_text(document_id, updated)
        return updated
