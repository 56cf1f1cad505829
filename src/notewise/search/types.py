"""Search result types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notewise.ref import DocumentRef


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A single chunk-level match from the similarity engine.

    Attributes:
        document: The live document the chunk belongs to.
        score: Cosine similarity in ``[-1, 1]``; ``nan`` when undefined.
        chunk_text: The embedded text that matched.
        record_id: Id of the matching embedding record.
    """

    document: DocumentRef
    score: float
    chunk_text: str
    record_id: str
