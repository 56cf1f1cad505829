"""NotePathManager — route notes into folders by content rules."""

from __future__ import annotations

import logging
import posixpath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notewise.config import NotePathRule
    from notewise.documents.protocol import DocumentStore
    from notewise.ref import DocumentRef

logger = logging.getLogger(__name__)


def resolve_destination(document_id: str, target_path: str) -> str:
    """Return where *document_id* lands for a rule targeting *target_path*.

    A target with a file extension is used as the full destination;
    anything else is a folder that keeps the note's file name.
    """
    target = target_path.strip().strip("/")
    _, ext = posixpath.splitext(target)
    if ext and not target_path.endswith("/"):
        return target
    return posixpath.join(target, posixpath.basename(document_id))


class NotePathManager:
    """Applies :class:`NotePathRule` rules; the first matching rule wins."""

    def __init__(self, documents: DocumentStore, rules: list[NotePathRule]) -> None:
        self._documents = documents
        self.rules = rules

    @staticmethod
    def matches(content: str, criteria: str) -> bool:
        """A rule matches when its criteria string occurs in the content."""
        return bool(criteria) and criteria in content

    async def suggest_path(self, document_id: str) -> str | None:
        """Destination of the first matching rule, or None."""
        content = await self._documents.read_text(document_id)
        for rule in self.rules:
            if self.matches(content, rule.criteria) and rule.target_path.strip():
                return resolve_destination(document_id, rule.target_path)
        return None

    async def check_and_move(self, document_id: str) -> DocumentRef | None:
        """Move *document_id* if a rule routes it elsewhere. Returns the new ref."""
        destination = await self.suggest_path(document_id)
        if destination is None or destination == document_id:
            return None
        return await self.move(document_id, destination)

    async def move(self, document_id: str, new_path: str) -> DocumentRef:
        logger.info("Moving %s to %s", document_id, new_path)
        return await self._documents.rename(document_id, new_path)
