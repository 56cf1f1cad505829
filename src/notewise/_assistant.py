"""Assistant — async facade wiring documents, provider, embeddings and features."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from notewise.config import Settings, load_settings
from notewise.documents.local import LocalDocumentStore
from notewise.events import EventBus, EventType
from notewise.features import (
    Atomizer,
    ChatSession,
    NLPManager,
    NotePathManager,
    TagSuggester,
    TextCleaner,
    TitleSuggester,
)
from notewise.providers import create_provider
from notewise.search import EmbeddingCacheManager, SimilarityQueryEngine
from notewise.store import EmbeddingStore

if TYPE_CHECKING:
    from notewise.events import DocumentEvent
    from notewise.providers._protocol import ModelProvider
    from notewise.ref import DocumentRef
    from notewise.search.types import SearchHit

logger = logging.getLogger(__name__)


class Assistant:
    """Note assistant over a folder of Markdown notes.

    Create an instance, then ``await open()`` (or use ``async with``)::

        async with Assistant("~/notes") as assistant:
            hits = await assistant.search("spaced repetition")

    Document changes made through :attr:`documents` keep the stored
    embeddings in step and route notes by the configured path rules.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        settings: Settings | None = None,
        provider: ModelProvider | None = None,
        store: EmbeddingStore | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._event_bus = EventBus()
        self.documents = LocalDocumentStore(
            Path(root).expanduser(), event_bus=self._event_bus
        )
        self.provider = provider or create_provider(self.settings)
        self.store = store or EmbeddingStore(data_dir=self.settings.data_dir)
        self.cache = EmbeddingCacheManager(
            self.documents,
            self.provider,
            self.store,
            cache_expiration_ms=self.settings.cache_expiration_ms,
        )
        self.engine = SimilarityQueryEngine(self.cache, self.store, self.documents)

        self.titles = TitleSuggester(self.documents, self.provider, self.engine)
        self.tags = TagSuggester(self.provider)
        self.atomizer = Atomizer(self.documents, self.provider)
        self.cleaner = TextCleaner(self.provider)
        self.nlp = NLPManager(self.provider)
        self.paths = NotePathManager(self.documents, self.settings.note_path_rules)

        self._closed = False

        self.cache.attach(self._event_bus)
        self._event_bus.subscribe(self._on_document_modified, EventType.DOCUMENT_MODIFIED)

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        await self.store.open()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self.cache.detach(self._event_bus)
        self._event_bus.unsubscribe(self._on_document_modified)
        await self.drain()
        await self.store.close()
        await self.provider.close()

    async def __aenter__(self) -> Assistant:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def drain(self) -> None:
        """Wait for background routing and embedding work to finish."""
        await self._event_bus.drain()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def index(self) -> int:
        """Bring the embeddings of every note up to date. Returns notes indexed."""
        refs = await self.documents.list_documents()
        for ref in refs:
            await self.cache.get_embeddings_for_document(ref.path)
        logger.info("Indexed %d documents", len(refs))
        return len(refs)

    async def search(self, query: str, top_k: int = 5) -> list[SearchHit]:
        return await self.engine.query(query, top_k)

    async def suggest_title(self, document_id: str) -> str:
        return await self.titles.suggest_title(document_id)

    async def suggest_tags(self, document_id: str) -> list[str]:
        return await self.tags.suggest_tags(await self.documents.read_text(document_id))

    async def route(self, document_id: str) -> DocumentRef | None:
        """Apply the note path rules to *document_id*."""
        return await self.paths.check_and_move(document_id)

    def chat(self) -> ChatSession:
        """Start a new chat session on the configured provider."""
        return ChatSession(self.provider)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _on_document_modified(self, event: DocumentEvent) -> None:
        if not self.paths.rules:
            return
        self._event_bus.spawn(self.route(event.document_id), f"route {event.document_id}")
