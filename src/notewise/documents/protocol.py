"""DocumentStore protocol — the note collection the assistant works on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from notewise.events import EventBus
    from notewise.ref import DocumentRef


@runtime_checkable
class DocumentStore(Protocol):
    """Async access to a collection of text documents keyed by path.

    Mutations emit :class:`~notewise.events.DocumentEvent` on
    :attr:`event_bus`.  Operations on missing documents raise
    :class:`~notewise.exceptions.DocumentNotFoundError`.
    """

    @property
    def event_bus(self) -> EventBus:
        """Bus on which document changes are announced."""
        ...

    async def read_text(self, document_id: str) -> str:
        """Return the full text of *document_id*."""
        ...

    async def write_text(self, document_id: str, content: str) -> None:
        """Replace the text of an existing document."""
        ...

    async def create(self, document_id: str, content: str) -> DocumentRef:
        """Create a new document."""
        ...

    async def rename(self, document_id: str, new_document_id: str) -> DocumentRef:
        """Move *document_id* to *new_document_id*."""
        ...

    async def delete(self, document_id: str) -> None:
        """Delete *document_id*."""
        ...

    async def get_document(self, document_id: str) -> DocumentRef | None:
        """Resolve *document_id* to a live reference, or None if it is gone."""
        ...

    async def list_documents(self) -> list[DocumentRef]:
        """Return every document in the collection."""
        ...
