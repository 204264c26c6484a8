# tests/core/test_blob_store.py
"""Tests for the filesystem blob store."""

from pathlib import Path

import pytest


class TestBlobStoreProtocol:
    def test_filesystem_store_implements_protocol(self, tmp_path: Path) -> None:
        from sharegate.core.blob_store import BlobStore, FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        assert isinstance(store, BlobStore)


class TestFilesystemBlobStore:
    def test_put_and_retrieve(self, tmp_path: Path) -> None:
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        ref = store.put(b"%PDF-1.7 content", "report.pdf")

        assert ref.endswith(".pdf")
        assert store.exists(ref)
        assert store.retrieve(ref) == b"%PDF-1.7 content"

    def test_stored_under_two_char_subdirectory(self, tmp_path: Path) -> None:
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        ref = store.put(b"data")

        assert (tmp_path / ref[:2] / ref).exists()

    def test_identical_content_gets_distinct_refs(self, tmp_path: Path) -> None:
        """Releasing one upload must never remove another's bytes."""
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        first = store.put(b"same bytes")
        second = store.put(b"same bytes")

        assert first != second
        assert store.release(first)
        assert store.retrieve(second) == b"same bytes"

    def test_release_missing_returns_false(self, tmp_path: Path) -> None:
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        ref = store.put(b"data")
        assert store.release(ref) is True
        assert store.release(ref) is False
        assert not store.exists(ref)

    def test_retrieve_missing_raises_key_error(self, tmp_path: Path) -> None:
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        with pytest.raises(KeyError):
            store.retrieve("0" * 32)

    @pytest.mark.parametrize("ref", ["../../etc/passwd", "abc", "0" * 32 + "/x"])
    def test_malformed_refs_rejected(self, tmp_path: Path, ref: str) -> None:
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        with pytest.raises(KeyError, match="Malformed"):
            store.retrieve(ref)
        assert store.exists(ref) is False

    @pytest.mark.parametrize(
        ("filename", "suffix"),
        [("notes.TXT", ".txt"), ("archive.tar.gz", ".gz"), ("no_extension", ""), (None, "")],
    )
    def test_extension_kept(self, tmp_path: Path, filename: str | None, suffix: str) -> None:
        from sharegate.core.blob_store import FilesystemBlobStore

        store = FilesystemBlobStore(tmp_path)
        ref = store.put(b"x", filename)
        assert ref[32:] == suffix
