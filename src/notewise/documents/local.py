"""LocalDocumentStore — a folder of Markdown notes on disk."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from notewise.events import DocumentEvent, EventBus, EventType
from notewise.exceptions import DocumentExistsError, DocumentNotFoundError
from notewise.ref import DocumentRef, normalize_document_id

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md",)


class LocalDocumentStore:
    """Document store over a directory of text notes.

    Document ids are root-relative POSIX paths (``"notes/idea.md"``).
    Every path is resolved inside ``root``; traversal and symlinks are
    rejected.  Writes are atomic via tempfile + replace.  Hidden
    directories (``.notewise``, ``.obsidian``, ...) are not listed.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        event_bus: EventBus | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise NotADirectoryError(f"Document root is not a directory: {self.root}")
        self.extensions = tuple(e.lower() for e in extensions)
        self._event_bus = event_bus or EventBus()

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------

    def _resolve(self, document_id: str) -> tuple[str, Path]:
        """Return the normalized id and physical path for *document_id*."""
        try:
            doc_id = normalize_document_id(document_id)
        except ValueError as exc:
            raise DocumentNotFoundError(str(exc)) from None

        current = self.root
        for part in Path(doc_id).parts:
            current = current / part
            if current.is_symlink():
                raise PermissionError(f"Symlinks not allowed: {doc_id}")

        resolved = (self.root / doc_id).resolve()
        try:
            resolved.relative_to(self.root)
        except ValueError:
            raise PermissionError(f"Path escapes the document root: {doc_id}") from None
        return doc_id, resolved

    def _to_document_id(self, physical_path: Path) -> str:
        return physical_path.relative_to(self.root).as_posix()

    # ------------------------------------------------------------------
    # DocumentStore protocol
    # ------------------------------------------------------------------

    async def read_text(self, document_id: str) -> str:
        doc_id, resolved = self._resolve(document_id)
        try:
            return await asyncio.to_thread(resolved.read_text, encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError):
            raise DocumentNotFoundError(f"Document not found: {doc_id}") from None

    async def write_text(self, document_id: str, content: str) -> None:
        """Overwrite an existing document and announce the modification."""
        doc_id, resolved = self._resolve(document_id)
        if not resolved.is_file():
            raise DocumentNotFoundError(f"Document not found: {doc_id}")
        await asyncio.to_thread(_atomic_write, resolved, content)
        await self._event_bus.emit(DocumentEvent(EventType.DOCUMENT_MODIFIED, doc_id))

    async def create(self, document_id: str, content: str) -> DocumentRef:
        doc_id, resolved = self._resolve(document_id)
        if resolved.exists():
            raise DocumentExistsError(f"Document already exists: {doc_id}")
        await asyncio.to_thread(_atomic_write, resolved, content)
        await self._event_bus.emit(DocumentEvent(EventType.DOCUMENT_CREATED, doc_id))
        return DocumentRef(doc_id)

    async def rename(self, document_id: str, new_document_id: str) -> DocumentRef:
        doc_id, src = self._resolve(document_id)
        new_id, dest = self._resolve(new_document_id)
        if not src.is_file():
            raise DocumentNotFoundError(f"Document not found: {doc_id}")
        if doc_id == new_id:
            return DocumentRef(doc_id)
        if dest.exists():
            raise DocumentExistsError(f"Document already exists: {new_id}")

        def _move() -> None:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dest))

        await asyncio.to_thread(_move)
        logger.debug("Renamed %s to %s", doc_id, new_id)
        await self._event_bus.emit(
            DocumentEvent(EventType.DOCUMENT_RENAMED, new_id, old_document_id=doc_id)
        )
        return DocumentRef(new_id)

    async def delete(self, document_id: str) -> None:
        doc_id, resolved = self._resolve(document_id)
        try:
            await asyncio.to_thread(resolved.unlink)
        except FileNotFoundError:
            raise DocumentNotFoundError(f"Document not found: {doc_id}") from None
        await self._event_bus.emit(DocumentEvent(EventType.DOCUMENT_DELETED, doc_id))

    async def get_document(self, document_id: str) -> DocumentRef | None:
        try:
            doc_id, resolved = self._resolve(document_id)
        except (DocumentNotFoundError, PermissionError):
            return None
        return DocumentRef(doc_id) if resolved.is_file() else None

    async def list_documents(self) -> list[DocumentRef]:
        return await asyncio.to_thread(self._scan)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def notify_modified(self, document_id: str) -> None:
        """Announce an edit made outside this store (editor, sync tool)."""
        doc_id, _ = self._resolve(document_id)
        await self._event_bus.emit(DocumentEvent(EventType.DOCUMENT_MODIFIED, doc_id))

    def _scan(self) -> list[DocumentRef]:
        refs: list[DocumentRef] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if filename.startswith(".") or not filename.lower().endswith(self.extensions):
                    continue
                refs.append(DocumentRef(self._to_document_id(Path(dirpath) / filename)))
        return refs


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        Path(tmp_path).replace(path)
    except Exception:
        with contextlib.suppress(OSError):
            Path(tmp_path).unlink()
        raise
