"""Embedding persistence — SQL-backed store and dialect helpers."""

from notewise.store.embedding_store import EmbeddingStore, sort_by_chunk, validate_record

__all__ = [
    "EmbeddingStore",
    "sort_by_chunk",
    "validate_record",
]
