"""Tests for document chunking."""

from __future__ import annotations

from notewise.search.chunker import chunk_content, iter_chunks


class TestChunkContent:
    def test_empty_content(self) -> None:
        assert chunk_content("") == []

    def test_single_paragraph(self) -> None:
        assert chunk_content("one line\nsecond line") == ["one line\nsecond line"]

    def test_splits_on_blank_lines(self) -> None:
        assert chunk_content("alpha\n\nbeta\n\ngamma") == ["alpha", "beta", "gamma"]

    def test_drops_whitespace_only_chunks(self) -> None:
        assert chunk_content("alpha\n\n\n\n   \n\nbeta") == ["alpha", "beta"]

    def test_whitespace_only_document(self) -> None:
        assert chunk_content("  \n\n \t ") == []

    def test_chunks_are_verbatim(self) -> None:
        assert chunk_content("  indented\n\ntrailing  ") == ["  indented", "trailing  "]

    def test_order_preserved(self) -> None:
        text = "\n\n".join(f"p{i}" for i in range(10))
        assert chunk_content(text) == [f"p{i}" for i in range(10)]


class TestIterChunks:
    def test_ordinals(self) -> None:
        assert list(iter_chunks("a\n\nb")) == [(0, "a"), (1, "b")]
