"""DocumentRef — document identity within a note collection."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass


def normalize_document_id(document_id: str) -> str:
    """Normalize a document path to a collection-relative POSIX path.

    - Strips surrounding whitespace and leading slashes
    - Resolves ``.`` and ``..`` segments and double slashes
    - Rejects paths that are empty or escape the collection root

    Examples:
        normalize_document_id("/notes//idea.md") -> "notes/idea.md"
        normalize_document_id("notes/./idea.md") -> "notes/idea.md"
    """
    path = document_id.strip().replace("\\", "/").lstrip("/")
    path = posixpath.normpath(path) if path else ""
    if not path or path == "." or path == ".." or path.startswith("../"):
        msg = f"Invalid document path: {document_id!r}"
        raise ValueError(msg)
    return path


@dataclass(frozen=True, slots=True)
class DocumentRef:
    """Immutable reference to a live document.

    Attributes:
        path: Collection-relative document path, e.g. ``"notes/idea.md"``.
    """

    path: str

    @property
    def name(self) -> str:
        """File name including extension."""
        return posixpath.basename(self.path)

    @property
    def basename(self) -> str:
        """File name without extension; used as the note title."""
        stem, _ = posixpath.splitext(self.name)
        return stem

    @property
    def parent(self) -> str:
        """Containing folder, ``""`` at the collection root."""
        return posixpath.dirname(self.path)
