"""SimilarityQueryEngine — rank stored chunks against a free-text query."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from notewise.search.similarity import cosine_similarity
from notewise.search.types import SearchHit

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notewise.documents.protocol import DocumentStore
    from notewise.ref import DocumentRef
    from notewise.search.cache import EmbeddingCacheManager
    from notewise.store.embedding_store import EmbeddingStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


def _rank_key(hit: SearchHit) -> tuple[bool, float]:
    # NaN scores sort after every real score
    if math.isnan(hit.score):
        return (True, 0.0)
    return (False, -hit.score)


def dedupe_by_document(hits: Iterable[SearchHit]) -> list[SearchHit]:
    """Keep the best-scoring hit per document, preserving rank order."""
    best: dict[str, SearchHit] = {}
    for hit in sorted(hits, key=_rank_key):
        best.setdefault(hit.document.path, hit)
    return list(best.values())


class SimilarityQueryEngine:
    """Scores every stored chunk against a query vector.

    The engine embeds the query through the cache manager, takes a
    snapshot of all stored records and ranks them by cosine similarity
    in a linear scan.  Hits are per chunk: several hits may point at the
    same document.  Use :func:`dedupe_by_document` for one hit per
    document.
    """

    def __init__(
        self,
        cache: EmbeddingCacheManager,
        store: EmbeddingStore,
        documents: DocumentStore,
    ) -> None:
        self._cache = cache
        self._store = store
        self._documents = documents

    async def query(self, query_text: str, top_k: int = DEFAULT_TOP_K) -> list[SearchHit]:
        """Return up to *top_k* chunk hits for *query_text*, best first."""
        if top_k <= 0:
            return []

        query_vector = await self._cache.generate_embedding(query_text)
        records = await self._store.get_all()
        if not records:
            return []

        resolved: dict[str, DocumentRef | None] = {}
        hits: list[SearchHit] = []
        for record in records:
            if record.document_id not in resolved:
                resolved[record.document_id] = await self._documents.get_document(
                    record.document_id
                )
            document = resolved[record.document_id]
            if document is None:
                continue

            try:
                score = cosine_similarity(query_vector, record.vector)
            except ValueError:
                logger.warning(
                    "Skipping embedding %s: %d dimensions, query has %d",
                    record.id,
                    len(record.vector),
                    len(query_vector),
                )
                continue

            hits.append(
                SearchHit(
                    document=document,
                    score=score,
                    chunk_text=record.chunk_text,
                    record_id=record.id,
                )
            )

        missing = [doc_id for doc_id, ref in resolved.items() if ref is None]
        if missing:
            logger.debug("Dropped hits for %d missing documents: %s", len(missing), missing)

        hits.sort(key=_rank_key)
        return hits[:top_k]

    async def query_document(
        self, document_id: str, top_k: int = DEFAULT_TOP_K
    ) -> list[SearchHit]:
        """Query with the full text of *document_id*."""
        content = await self._documents.read_text(document_id)
        return await self.query(content, top_k)
