"""EmbeddingRecord model — one vector per document chunk."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Column, Index, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def record_id(document_id: str, chunk_index: int) -> str:
    """Return the deterministic record id for a document chunk."""
    return f"{document_id}-{chunk_index}"


class EmbeddingRecord(SQLModel, table=True):
    """A chunk of a document together with its embedding vector.

    ``(document_id, chunk_text)`` is unique; all records of one document
    are written and deleted together.  ``created_at`` is epoch
    milliseconds and is shared by every record of one generation pass.
    """

    __tablename__ = "notewise_embeddings"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_text", name="uq_notewise_embeddings_chunk"),
        Index("ix_notewise_embeddings_document_id", "document_id"),
    )

    id: str = Field(primary_key=True)
    document_id: str
    chunk_text: str = Field(sa_column=Column(Text, nullable=False))
    vector: list[float] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
