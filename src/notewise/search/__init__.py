"""Semantic search — chunking, embedding cache and similarity ranking."""

from notewise.search._engine import SimilarityQueryEngine, dedupe_by_document
from notewise.search.cache import EmbeddingCacheManager
from notewise.search.chunker import chunk_content, iter_chunks
from notewise.search.similarity import cosine_similarity
from notewise.search.types import SearchHit

__all__ = [
    "EmbeddingCacheManager",
    "SearchHit",
    "SimilarityQueryEngine",
    "chunk_content",
    "cosine_similarity",
    "dedupe_by_document",
    "iter_chunks",
]
