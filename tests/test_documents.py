"""Tests for LocalDocumentStore and document references."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from notewise.documents import DocumentStore, LocalDocumentStore
from notewise.events import DocumentEvent, EventType
from notewise.exceptions import DocumentExistsError, DocumentNotFoundError
from notewise.ref import DocumentRef, normalize_document_id

if TYPE_CHECKING:
    from pathlib import Path


class TestNormalizeDocumentId:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("a.md", "a.md"),
            ("/notes//idea.md", "notes/idea.md"),
            ("notes/./idea.md", "notes/idea.md"),
            ("notes\\idea.md", "notes/idea.md"),
            (" a/b/../c.md ", "a/c.md"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert normalize_document_id(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "/", ".", "..", "../escape.md", "a/../../b.md"])
    def test_rejects(self, raw: str) -> None:
        with pytest.raises(ValueError, match="Invalid document path"):
            normalize_document_id(raw)


class TestDocumentRef:
    def test_parts(self) -> None:
        ref = DocumentRef("notes/My Idea.md")
        assert ref.name == "My Idea.md"
        assert ref.basename == "My Idea"
        assert ref.parent == "notes"

    def test_root_parent(self) -> None:
        assert DocumentRef("a.md").parent == ""


class TestLocalDocumentStore:
    @pytest.fixture
    def events(self, documents: LocalDocumentStore) -> list[DocumentEvent]:
        seen: list[DocumentEvent] = []

        async def record(event: DocumentEvent) -> None:
            seen.append(event)

        for event_type in EventType:
            documents.event_bus.subscribe(record, event_type)
        return seen

    def test_satisfies_protocol(self, documents: LocalDocumentStore) -> None:
        assert isinstance(documents, DocumentStore)

    def test_root_must_exist(self, tmp_path: Path) -> None:
        with pytest.raises(NotADirectoryError):
            LocalDocumentStore(tmp_path / "missing")

    async def test_create_and_read(
        self, documents: LocalDocumentStore, events: list[DocumentEvent], notes_dir: Path
    ) -> None:
        ref = await documents.create("dir/a.md", "hello")
        assert ref == DocumentRef("dir/a.md")
        assert (notes_dir / "dir" / "a.md").read_text() == "hello"
        assert await documents.read_text("dir/a.md") == "hello"
        assert events == [DocumentEvent(EventType.DOCUMENT_CREATED, "dir/a.md")]

    async def test_create_existing(self, documents: LocalDocumentStore) -> None:
        await documents.create("a.md", "one")
        with pytest.raises(DocumentExistsError):
            await documents.create("a.md", "two")

    async def test_read_missing(self, documents: LocalDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            await documents.read_text("missing.md")

    async def test_write_text(
        self, documents: LocalDocumentStore, events: list[DocumentEvent]
    ) -> None:
        await documents.create("a.md", "one")
        await documents.write_text("a.md", "two")
        assert await documents.read_text("a.md") == "two"
        assert events[-1] == DocumentEvent(EventType.DOCUMENT_MODIFIED, "a.md")

    async def test_write_missing(self, documents: LocalDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            await documents.write_text("missing.md", "text")

    async def test_rename(
        self, documents: LocalDocumentStore, events: list[DocumentEvent], notes_dir: Path
    ) -> None:
        await documents.create("a.md", "one")
        ref = await documents.rename("a.md", "archive/b.md")
        assert ref.path == "archive/b.md"
        assert not (notes_dir / "a.md").exists()
        assert events[-1] == DocumentEvent(
            EventType.DOCUMENT_RENAMED, "archive/b.md", old_document_id="a.md"
        )

    async def test_rename_onto_existing(self, documents: LocalDocumentStore) -> None:
        await documents.create("a.md", "one")
        await documents.create("b.md", "two")
        with pytest.raises(DocumentExistsError):
            await documents.rename("a.md", "b.md")

    async def test_delete(
        self, documents: LocalDocumentStore, events: list[DocumentEvent]
    ) -> None:
        await documents.create("a.md", "one")
        await documents.delete("a.md")
        assert await documents.get_document("a.md") is None
        assert events[-1] == DocumentEvent(EventType.DOCUMENT_DELETED, "a.md")
        with pytest.raises(DocumentNotFoundError):
            await documents.delete("a.md")

    async def test_traversal_rejected(self, documents: LocalDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            await documents.read_text("../outside.md")
        assert await documents.get_document("../outside.md") is None

    async def test_symlink_rejected(
        self, documents: LocalDocumentStore, notes_dir: Path, tmp_path: Path
    ) -> None:
        target = tmp_path / "secret.md"
        target.write_text("secret")
        (notes_dir / "link.md").symlink_to(target)
        with pytest.raises(PermissionError):
            await documents.read_text("link.md")

    async def test_list_documents(self, documents: LocalDocumentStore, notes_dir: Path) -> None:
        (notes_dir / "b.md").write_text("b")
        (notes_dir / "a.md").write_text("a")
        (notes_dir / "image.png").write_bytes(b"\x89PNG")
        (notes_dir / ".hidden").mkdir()
        (notes_dir / ".hidden" / "c.md").write_text("c")
        (notes_dir / "sub").mkdir()
        (notes_dir / "sub" / "d.md").write_text("d")

        refs = await documents.list_documents()
        assert [r.path for r in refs] == ["a.md", "b.md", "sub/d.md"]

    async def test_notify_modified(
        self, documents: LocalDocumentStore, events: list[DocumentEvent]
    ) -> None:
        await documents.notify_modified("/a.md")
        assert events == [DocumentEvent(EventType.DOCUMENT_MODIFIED, "a.md")]
