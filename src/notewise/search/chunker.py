"""Chunking — split document text into the units that get embedded."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

CHUNK_SEPARATOR = "\n\n"


def chunk_content(content: str) -> list[str]:
    """Split *content* on blank lines into an ordered list of chunks.

    Chunks that are empty or whitespace-only are dropped; the others are
    returned verbatim, since chunk text is part of the storage key.
    """
    if not content:
        return []
    return [chunk for chunk in content.split(CHUNK_SEPARATOR) if chunk.strip()]


def iter_chunks(content: str) -> Iterator[tuple[int, str]]:
    """Yield ``(ordinal, chunk)`` pairs for *content*."""
    yield from enumerate(chunk_content(content))
