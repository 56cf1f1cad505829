"""Atomizer — split a note into single-concept notes."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING

from notewise.exceptions import DocumentExistsError, MalformedOutputError
from notewise.features._output import parse_json_output
from notewise.features.prompts import ATOMIC_NOTE_PROMPT, CONCEPTS_PROMPT
from notewise.features.titles import sanitize_title

if TYPE_CHECKING:
    from notewise.documents.protocol import DocumentStore
    from notewise.providers._protocol import ModelProvider
    from notewise.ref import DocumentRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AtomicNote:
    """One concept extracted from a source note."""

    title: str
    content: str


class Atomizer:
    """Turns a note into a list of :class:`AtomicNote` via two prompt rounds.

    The model first lists the key concepts as a JSON array, then writes
    one ``{"title", "content"}`` JSON object per concept.
    """

    def __init__(self, documents: DocumentStore, provider: ModelProvider) -> None:
        self._documents = documents
        self._provider = provider

    async def atomize(self, document_id: str) -> list[AtomicNote]:
        content = await self._documents.read_text(document_id)
        concepts = await self.identify_key_concepts(content)
        notes: list[AtomicNote] = []
        for concept in concepts:
            notes.append(await self.generate_atomic_note(concept, content, source=document_id))
        return notes

    async def identify_key_concepts(self, content: str) -> list[str]:
        response = await self._provider.complete(CONCEPTS_PROMPT.format(content=content))
        parsed = parse_json_output(response, "key concepts")
        if not isinstance(parsed, list):
            raise MalformedOutputError("Key concepts must be a JSON array")
        return [str(c).strip() for c in parsed if str(c).strip()]

    async def generate_atomic_note(
        self, concept: str, source_content: str, *, source: str = ""
    ) -> AtomicNote:
        prompt = ATOMIC_NOTE_PROMPT.format(concept=concept, source=source, content=source_content)
        parsed = parse_json_output(await self._provider.complete(prompt), "atomic note")
        if not isinstance(parsed, dict):
            raise MalformedOutputError("Atomic note must be a JSON object")
        title = parsed.get("title")
        body = parsed.get("content")
        if not isinstance(title, str) or not isinstance(body, str) or not title.strip():
            raise MalformedOutputError('Atomic note needs string "title" and "content" fields')
        return AtomicNote(title=title.strip(), content=body)

    async def create_notes(self, notes: list[AtomicNote], folder: str = "") -> list[DocumentRef]:
        """Write each note to ``<folder>/<title>.md``, numbering on collisions."""
        created: list[DocumentRef] = []
        for note in notes:
            stem = sanitize_title(note.title) or "Untitled"
            ref = await self._create_unique(folder, stem, note.content)
            created.append(ref)
        logger.info("Created %d atomic notes", len(created))
        return created

    async def _create_unique(self, folder: str, stem: str, content: str) -> DocumentRef:
        attempt = 1
        while True:
            suffix = "" if attempt == 1 else f" {attempt}"
            document_id = posixpath.join(folder, f"{stem}{suffix}.md")
            try:
                return await self._documents.create(document_id, content)
            except DocumentExistsError:
                attempt += 1
