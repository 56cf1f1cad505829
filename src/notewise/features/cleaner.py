"""TextCleaner — grammar and formatting pass over note text."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notewise.features.prompts import CLEAN_TEXT_PROMPT

if TYPE_CHECKING:
    from notewise.documents.protocol import DocumentStore
    from notewise.providers._protocol import ModelProvider


class TextCleaner:
    def __init__(self, provider: ModelProvider) -> None:
        self._provider = provider

    async def clean_text(self, text: str) -> str:
        return await self._provider.complete(CLEAN_TEXT_PROMPT.format(text=text))

    async def clean_document(self, documents: DocumentStore, document_id: str) -> str:
        """Replace the text of *document_id* with its cleaned version."""
        cleaned = await self.clean_text(await documents.read_text(document_id))
        await documents.write_text(document_id, cleaned)
        return cleaned
