"""Shared fixtures for notewise tests."""

from __future__ import annotations

import asyncio
import hashlib
import math
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from notewise.documents.local import LocalDocumentStore
from notewise.models.embeddings import EmbeddingRecord  # noqa: F401  registers the table
from notewise.search._engine import SimilarityQueryEngine
from notewise.search.cache import EmbeddingCacheManager
from notewise.store.embedding_store import EmbeddingStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

FAKE_DIM = 32
START_MS = 1_700_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


def hash_vector(text: str, dim: int = FAKE_DIM) -> list[float]:
    """Deterministic unit vector derived from the sha256 of *text*."""
    h = hashlib.sha256(text.encode()).digest()
    raw = [float(b) + 1.0 for b in h[:dim]]
    norm = math.sqrt(sum(x * x for x in raw))
    return [x / norm for x in raw]


class FakeProvider:
    """Deterministic async model provider.

    ``vectors`` overrides the embedding of specific texts, ``fail_on``
    makes embedding of those texts raise, ``delay`` slows every embed
    call, and ``responses`` is a queue of completion replies.
    """

    def __init__(self) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.fail_on: set[str] = set()
        self.delay = 0.0
        self.responses: list[str] = []
        self.embed_calls: list[str] = []
        self.prompts: list[str] = []
        self.closed = False

    async def embed(self, text: str) -> list[float]:
        self.embed_calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if text in self.fail_on:
            raise RuntimeError(f"cannot embed {text!r}")
        return self.vectors.get(text, hash_vector(text))

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("No scripted completion left")
        return self.responses.pop(0)

    @property
    def model_name(self) -> str:
        return "fake"

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    root = tmp_path / "notes"
    root.mkdir()
    return root


@pytest.fixture
def documents(notes_dir: Path) -> LocalDocumentStore:
    return LocalDocumentStore(notes_dir)


@pytest.fixture
async def store(tmp_path: Path) -> AsyncIterator[EmbeddingStore]:
    """File-backed SQLite embedding store, opened and closed per test."""
    s = EmbeddingStore(data_dir=tmp_path / "data")
    await s.open()
    yield s
    await s.close()


@pytest.fixture
async def cache(
    documents: LocalDocumentStore,
    provider: FakeProvider,
    store: EmbeddingStore,
    clock: FakeClock,
) -> AsyncIterator[EmbeddingCacheManager]:
    manager = EmbeddingCacheManager(
        documents, provider, store, cache_expiration_ms=DAY_MS, clock=clock
    )
    yield manager
    manager.detach(documents.event_bus)
    await documents.event_bus.cancel_pending()


@pytest.fixture
def engine(
    cache: EmbeddingCacheManager, store: EmbeddingStore, documents: LocalDocumentStore
) -> SimilarityQueryEngine:
    return SimilarityQueryEngine(cache, store, documents)


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()
