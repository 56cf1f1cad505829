"""SQLModel database models for notewise."""

from notewise.models.embeddings import EmbeddingRecord, record_id

__all__ = [
    "EmbeddingRecord",
    "record_id",
]
