"""Tests for cosine similarity and the similarity query engine."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import pytest

from notewise.models.embeddings import EmbeddingRecord, record_id
from notewise.ref import DocumentRef
from notewise.search._engine import SimilarityQueryEngine, dedupe_by_document
from notewise.search.similarity import cosine_similarity
from notewise.search.types import SearchHit

if TYPE_CHECKING:
    from pathlib import Path

    from notewise.store.embedding_store import EmbeddingStore

    from conftest import FakeProvider


QUERY = "the query"


def _record(document_id: str, index: int, vector: list[float]) -> EmbeddingRecord:
    return EmbeddingRecord(
        id=record_id(document_id, index),
        document_id=document_id,
        chunk_text=f"{document_id} chunk {index}",
        vector=vector,
        created_at=1000,
    )


def _touch(notes_dir: Path, *names: str) -> None:
    for name in names:
        path = notes_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(name, encoding="utf-8")


def _hit(path: str, score: float) -> SearchHit:
    return SearchHit(document=DocumentRef(path), score=score, chunk_text="", record_id=path)


# =========================================================================
# cosine_similarity
# =========================================================================


class TestCosineSimilarity:
    def test_identical(self) -> None:
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self) -> None:
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self) -> None:
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_zero_vector_is_nan(self) -> None:
        assert math.isnan(cosine_similarity([0.0, 0.0], [1.0, 0.0]))

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError, match="length"):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


# =========================================================================
# SimilarityQueryEngine
# =========================================================================


class TestQuery:
    async def test_empty_store(
        self, engine: SimilarityQueryEngine, provider: FakeProvider
    ) -> None:
        assert await engine.query(QUERY) == []

    async def test_non_positive_top_k(
        self, engine: SimilarityQueryEngine, provider: FakeProvider
    ) -> None:
        assert await engine.query(QUERY, top_k=0) == []
        assert provider.embed_calls == []

    async def test_ranked_best_first(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        provider.vectors[QUERY] = [1.0, 0.0]
        _touch(notes_dir, "same.md", "orthogonal.md", "opposite.md")
        await store.put(
            [
                _record("orthogonal.md", 0, [0.0, 1.0]),
                _record("opposite.md", 0, [-1.0, 0.0]),
                _record("same.md", 0, [2.0, 0.0]),
            ]
        )

        hits = await engine.query(QUERY)
        assert [h.document.path for h in hits] == ["same.md", "orthogonal.md", "opposite.md"]
        assert [h.score for h in hits] == pytest.approx([1.0, 0.0, -1.0])
        assert hits[0].chunk_text == "same.md chunk 0"
        assert hits[0].record_id == "same.md-0"

    async def test_top_k_of_ten(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        provider.vectors[QUERY] = [1.0, 0.0]
        names = [f"n{i}.md" for i in range(10)]
        _touch(notes_dir, *names)
        await store.put(
            [_record(name, 0, [1.0, float(i)]) for i, name in enumerate(names)]
        )

        hits = await engine.query(QUERY, top_k=3)
        assert [h.document.path for h in hits] == ["n0.md", "n1.md", "n2.md"]
        scores = [h.score for h in hits]
        assert scores == sorted(scores, reverse=True)

    async def test_fewer_records_than_top_k(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        notes_dir: Path,
    ) -> None:
        _touch(notes_dir, "a.md")
        await store.put([_record("a.md", 0, [1.0] * 32)])
        assert len(await engine.query(QUERY, top_k=5)) == 1

    async def test_nan_scores_sort_last(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        provider.vectors[QUERY] = [1.0, 0.0]
        _touch(notes_dir, "zero.md", "low.md", "high.md")
        await store.put(
            [
                _record("zero.md", 0, [0.0, 0.0]),
                _record("low.md", 0, [-1.0, 0.0]),
                _record("high.md", 0, [1.0, 1.0]),
            ]
        )

        hits = await engine.query(QUERY)
        assert [h.document.path for h in hits] == ["high.md", "low.md", "zero.md"]
        assert math.isnan(hits[-1].score)

    async def test_missing_documents_dropped(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        provider.vectors[QUERY] = [1.0, 0.0]
        _touch(notes_dir, "kept.md")
        await store.put(
            [_record("gone.md", 0, [1.0, 0.0]), _record("kept.md", 0, [0.5, 0.5])]
        )

        hits = await engine.query(QUERY)
        assert [h.document.path for h in hits] == ["kept.md"]

    async def test_hits_are_per_chunk(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        provider.vectors[QUERY] = [1.0, 0.0]
        _touch(notes_dir, "a.md")
        await store.put([_record("a.md", 0, [1.0, 0.0]), _record("a.md", 1, [1.0, 0.2])])

        hits = await engine.query(QUERY)
        assert [h.record_id for h in hits] == ["a.md-0", "a.md-1"]
        assert [h.document.path for h in dedupe_by_document(hits)] == ["a.md"]

    async def test_dimension_mismatch_skipped(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        provider.vectors[QUERY] = [1.0, 0.0]
        _touch(notes_dir, "a.md", "b.md")
        await store.put([_record("a.md", 0, [1.0, 0.0, 0.0]), _record("b.md", 0, [1.0, 0.0])])

        hits = await engine.query(QUERY)
        assert [h.document.path for h in hits] == ["b.md"]

    async def test_query_document(
        self,
        engine: SimilarityQueryEngine,
        store: EmbeddingStore,
        provider: FakeProvider,
        notes_dir: Path,
    ) -> None:
        _touch(notes_dir, "source.md", "target.md")
        provider.vectors["source.md"] = [0.0, 1.0]
        await store.put([_record("target.md", 0, [0.0, 3.0])])

        hits = await engine.query_document("source.md")
        assert [h.document.path for h in hits] == ["target.md"]
        assert hits[0].score == pytest.approx(1.0)


class TestDedupeByDocument:
    def test_keeps_best_hit_per_document(self) -> None:
        hits = [_hit("a.md", 0.2), _hit("b.md", 0.9), _hit("a.md", 0.7)]
        deduped = dedupe_by_document(hits)
        assert [(h.document.path, h.score) for h in deduped] == [("b.md", 0.9), ("a.md", 0.7)]

    def test_nan_never_beats_real_score(self) -> None:
        hits = [_hit("a.md", float("nan")), _hit("a.md", -0.5)]
        assert dedupe_by_document(hits)[0].score == -0.5

    def test_empty(self) -> None:
        assert dedupe_by_document([]) == []
