"""EmbeddingCacheManager — read-through cache from documents to stored embeddings."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
import weakref
from typing import TYPE_CHECKING, Any

from notewise.events import EventType
from notewise.exceptions import (
    DocumentNotFoundError,
    EmbeddingGenerationError,
    ModelProviderError,
    NotewiseError,
)
from notewise.models.embeddings import EmbeddingRecord, record_id
from notewise.ref import normalize_document_id
from notewise.search.chunker import chunk_content
from notewise.store.embedding_store import sort_by_chunk

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Coroutine

    from notewise.documents.protocol import DocumentStore
    from notewise.events import DocumentEvent, EventBus
    from notewise.providers._protocol import ModelProvider
    from notewise.store.embedding_store import EmbeddingStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def _is_vector(value: Any) -> bool:
    if not isinstance(value, list) or not value:
        return False
    return all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v) for v in value
    )


class EmbeddingCacheManager:
    """Sits between documents and the :class:`EmbeddingStore`.

    A document's embedding set is fresh while its first record is younger
    than ``cache_expiration_ms``; every record of one generation pass
    shares a single ``created_at``, so one record speaks for the set.
    Misses chunk the document, embed every chunk through the
    :class:`ModelProvider` and replace the stored set as a unit.

    With *single_flight* (the default) regeneration is serialized per
    document id, and callers that queued behind a regeneration reuse its
    result instead of embedding the document again.
    """

    def __init__(
        self,
        documents: DocumentStore,
        provider: ModelProvider,
        store: EmbeddingStore,
        *,
        cache_expiration_ms: int,
        clock: Callable[[], int] | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        single_flight: bool = True,
    ) -> None:
        if cache_expiration_ms < 0:
            msg = f"cache_expiration_ms must be >= 0, got {cache_expiration_ms}"
            raise ValueError(msg)
        if max_concurrency < 1:
            msg = f"max_concurrency must be >= 1, got {max_concurrency}"
            raise ValueError(msg)
        self._documents = documents
        self._provider = provider
        self._store = store
        self.cache_expiration_ms = cache_expiration_ms
        self._clock = clock or now_ms
        self.max_concurrency = max_concurrency
        self.single_flight = single_flight
        # Locks live only while a task holds or awaits them.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        # Edit counters of documents whose stored set predates their content.
        self._dirty: dict[str, int] = {}
        self._event_bus: EventBus | None = None

    # ------------------------------------------------------------------
    # Read-through
    # ------------------------------------------------------------------

    def is_fresh(self, record: EmbeddingRecord, now: int | None = None) -> bool:
        """Return whether *record* is younger than the cache expiration."""
        current = self._clock() if now is None else now
        return current - record.created_at < self.cache_expiration_ms

    async def get_embeddings_for_document(self, document_id: str) -> list[EmbeddingRecord]:
        """Return the document's embeddings, regenerating them when missing or stale."""
        doc_id = normalize_document_id(document_id)
        stored = await self._store.get_by_document(doc_id)
        if stored and self.is_fresh(stored[0]):
            logger.debug("Embedding cache hit for %s (%d records)", doc_id, len(stored))
            return sort_by_chunk(stored)

        async with self._guard(doc_id):
            if self.single_flight:
                stored = await self._store.get_by_document(doc_id)
                if stored and self.is_fresh(stored[0]):
                    logger.debug("Reusing embeddings regenerated concurrently for %s", doc_id)
                    return sort_by_chunk(stored)
            logger.debug("Embedding cache miss for %s", doc_id)
            return await self._regenerate(doc_id)

    async def generate_embeddings_for_document(self, document_id: str) -> list[EmbeddingRecord]:
        """Re-embed the document unconditionally and replace its stored set."""
        doc_id = normalize_document_id(document_id)
        async with self._guard(doc_id):
            return await self._regenerate(doc_id)

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed *text* directly through the provider, bypassing the store."""
        try:
            vector = await self._provider.embed(text)
        except NotewiseError:
            raise
        except Exception as exc:
            raise ModelProviderError(f"Embedding request failed: {exc}") from exc
        if not _is_vector(vector):
            raise ModelProviderError("Model provider returned a malformed embedding")
        return [float(v) for v in vector]

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def attach(self, event_bus: EventBus) -> None:
        """Keep stored embeddings in step with changes announced on *event_bus*.

        Refreshes, deletes and moves run as background tasks on the bus,
        under the same per-document locks as regeneration.
        """
        self._event_bus = event_bus
        event_bus.subscribe(
            self._on_document_changed, EventType.DOCUMENT_CREATED, EventType.DOCUMENT_MODIFIED
        )
        event_bus.subscribe(self._on_document_deleted, EventType.DOCUMENT_DELETED)
        event_bus.subscribe(self._on_document_renamed, EventType.DOCUMENT_RENAMED)

    def detach(self, event_bus: EventBus) -> None:
        event_bus.unsubscribe(self._on_document_changed)
        event_bus.unsubscribe(self._on_document_deleted)
        event_bus.unsubscribe(self._on_document_renamed)

    async def _on_document_changed(self, event: DocumentEvent) -> None:
        self._mark_dirty(event.document_id)
        self._background(self._refresh(event.document_id), f"refresh {event.document_id}")

    async def _on_document_deleted(self, event: DocumentEvent) -> None:
        self._background(self._forget(event.document_id), f"forget {event.document_id}")

    async def _on_document_renamed(self, event: DocumentEvent) -> None:
        if event.old_document_id is None:
            self._mark_dirty(event.document_id)
            self._background(self._refresh(event.document_id), f"refresh {event.document_id}")
            return
        self._background(
            self._move(event.old_document_id, event.document_id),
            f"move {event.old_document_id} to {event.document_id}",
        )

    async def _refresh(self, doc_id: str) -> None:
        try:
            await self.generate_embeddings_for_document(doc_id)
        except DocumentNotFoundError:
            # Deleted or renamed since the event; that event's own task settles the store.
            logger.debug("Skipped refresh of %s: document no longer exists", doc_id)

    async def _forget(self, doc_id: str) -> None:
        async with self._locked(doc_id):
            self._dirty.pop(doc_id, None)
            removed = await self._store.delete_by_document(doc_id)
        logger.debug("Dropped %d embeddings of deleted %s", removed, doc_id)

    async def _move(self, old_id: str, new_id: str) -> None:
        async with self._locked(old_id, new_id):
            moved = await self._store.rename_document(old_id, new_id)
            dirty = self._dirty.pop(old_id, None) is not None
        logger.debug("Moved %d embeddings from %s to %s", moved, old_id, new_id)
        if dirty:
            # A refresh for the old path never landed, so the moved set predates the edit.
            self._mark_dirty(new_id)
            await self._refresh(new_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _background(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        if self._event_bus is None:
            coro.close()
            msg = "EmbeddingCacheManager is not attached to an event bus"
            raise RuntimeError(msg)
        self._event_bus.spawn(coro, name)

    def _mark_dirty(self, document_id: str) -> None:
        self._dirty[document_id] = self._dirty.get(document_id, 0) + 1

    def _lock_for(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    def _guard(self, document_id: str) -> contextlib.AbstractAsyncContextManager[Any]:
        if not self.single_flight:
            return contextlib.nullcontext()
        return self._lock_for(document_id)

    @contextlib.asynccontextmanager
    async def _locked(self, *document_ids: str) -> AsyncIterator[None]:
        """Hold the locks of every id, taken in sorted order."""
        async with contextlib.AsyncExitStack() as stack:
            for document_id in sorted(set(document_ids)):
                await stack.enter_async_context(self._lock_for(document_id))
            yield

    async def _regenerate(self, doc_id: str) -> list[EmbeddingRecord]:
        edit = self._dirty.get(doc_id)
        content = await self._documents.read_text(doc_id)

        # Repeated paragraphs are embedded once; the unique key is (document, text).
        seen: set[str] = set()
        chunks: list[tuple[int, str]] = []
        for index, chunk in enumerate(chunk_content(content)):
            if chunk in seen:
                continue
            seen.add(chunk)
            chunks.append((index, chunk))

        vectors = await self._embed_chunks(doc_id, chunks)
        if await self._documents.get_document(doc_id) is None:
            raise DocumentNotFoundError(f"Document not found: {doc_id}")
        created_at = self._clock()
        records = [
            EmbeddingRecord(
                id=record_id(doc_id, index),
                document_id=doc_id,
                chunk_text=chunk,
                vector=vector,
                created_at=created_at,
            )
            for (index, chunk), vector in zip(chunks, vectors, strict=True)
        ]
        await self._store.replace_document(doc_id, records)
        if edit is not None and self._dirty.get(doc_id) == edit:
            del self._dirty[doc_id]
        logger.debug("Generated %d embeddings for %s", len(records), doc_id)
        return records

    async def _embed_chunks(
        self, doc_id: str, chunks: list[tuple[int, str]]
    ) -> list[list[float]]:
        """Embed *chunks* concurrently; results keep chunk order.

        The first failing chunk (in chunk order) aborts the pass with
        :class:`EmbeddingGenerationError`.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _embed_one(index: int, chunk: str) -> list[float]:
            async with semaphore:
                try:
                    vector = await self._provider.embed(chunk)
                except Exception as exc:
                    msg = f"Failed to embed chunk {index} of {doc_id}: {exc}"
                    raise EmbeddingGenerationError(
                        msg, chunk_index=index, document_id=doc_id
                    ) from exc
            if not _is_vector(vector):
                msg = f"Model provider returned a malformed vector for chunk {index} of {doc_id}"
                raise EmbeddingGenerationError(msg, chunk_index=index, document_id=doc_id)
            return [float(v) for v in vector]

        results = await asyncio.gather(
            *(_embed_one(index, chunk) for index, chunk in chunks),
            return_exceptions=True,
        )
        vectors: list[list[float]] = []
        for (index, _), result in zip(chunks, results, strict=True):
            if isinstance(result, BaseException):
                raise result
            if vectors and len(result) != len(vectors[0]):
                msg = (
                    f"Chunk {index} of {doc_id} has {len(result)} dimensions, "
                    f"expected {len(vectors[0])}"
                )
                raise EmbeddingGenerationError(msg, chunk_index=index, document_id=doc_id)
            vectors.append(result)
        return vectors
