"""TitleSuggester — propose a note title informed by similar notes."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import TYPE_CHECKING

from notewise.features.prompts import TITLE_PROMPT
from notewise.ref import normalize_document_id
from notewise.search._engine import dedupe_by_document

if TYPE_CHECKING:
    from notewise.documents.protocol import DocumentStore
    from notewise.providers._protocol import ModelProvider
    from notewise.ref import DocumentRef
    from notewise.search._engine import SimilarityQueryEngine

logger = logging.getLogger(__name__)

_INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|#^\[\]]')


def sanitize_title(title: str) -> str:
    """Turn a model-suggested title into a usable file name stem."""
    cleaned = title.strip().splitlines()[0] if title.strip() else ""
    cleaned = cleaned.strip().strip("\"'`").strip()
    cleaned = _INVALID_FILENAME_CHARS.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


class TitleSuggester:
    """Suggests titles using the note content and its nearest neighbours."""

    def __init__(
        self,
        documents: DocumentStore,
        provider: ModelProvider,
        engine: SimilarityQueryEngine,
        *,
        similar_count: int = 5,
    ) -> None:
        self._documents = documents
        self._provider = provider
        self._engine = engine
        self.similar_count = similar_count

    async def suggest_title(self, document_id: str) -> str:
        content = await self._documents.read_text(document_id)
        similar = await self.similar_titles(document_id, content)
        prompt = TITLE_PROMPT.format(similar_titles=", ".join(similar), content=content)
        return (await self._provider.complete(prompt)).strip()

    async def similar_titles(self, document_id: str, content: str) -> list[str]:
        """Titles of the closest other notes, one per note."""
        # Hits are per chunk, so over-fetch before collapsing to documents.
        own_id = normalize_document_id(document_id)
        hits = await self._engine.query(content, top_k=self.similar_count * 4)
        titles = [
            hit.document.basename
            for hit in dedupe_by_document(hits)
            if hit.document.path != own_id
        ]
        return titles[: self.similar_count]

    async def apply_title(self, document_id: str, title: str) -> DocumentRef:
        """Rename *document_id* to ``<title>.md`` in the same folder."""
        stem = sanitize_title(title)
        if not stem:
            msg = f"Cannot rename {document_id} to an empty title"
            raise ValueError(msg)
        folder = posixpath.dirname(document_id)
        _, ext = posixpath.splitext(document_id)
        new_id = posixpath.join(folder, f"{stem}{ext or '.md'}")
        logger.info("Renaming %s to %s", document_id, new_id)
        return await self._documents.rename(document_id, new_id)
