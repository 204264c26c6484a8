# src/sharegate/core/blob_store.py
"""
Blob store for uploaded file content kept outside the item store.

Items reference blobs by an opaque ref. Each upload gets its own ref
(no content addressing), so releasing one item's blob never affects
another item that happened to upload identical bytes.
"""

import re
import uuid
from pathlib import Path
from typing import Protocol, runtime_checkable

# 32 hex chars, optional short alphanumeric extension
_REF_PATTERN = re.compile(r"^[0-9a-f]{32}(\.[A-Za-z0-9]{1,10})?$")


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for blob storage backends.

    The engine itself only ever calls release(); put/retrieve/exists
    serve the creation path and consumers fetching resolved blobs.
    """

    def put(self, content: bytes, filename: str | None = None) -> str:
        """Store content and return its ref.

        Args:
            content: Raw bytes to store
            filename: Original filename, used only for its extension

        Returns:
            Opaque blob ref
        """
        ...

    def retrieve(self, ref: str) -> bytes:
        """Retrieve content by ref.

        Raises:
            KeyError: If content not found
        """
        ...

    def exists(self, ref: str) -> bool:
        """Check if a blob exists."""
        ...

    def release(self, ref: str) -> bool:
        """Delete a blob.

        Returns:
            True if the blob was deleted, False if it was not found
        """
        ...


class FilesystemBlobStore:
    """Filesystem-based blob store.

    Stores blobs in a directory structure using first 2 characters
    of the ref as subdirectory for better file distribution.

    Structure: base_path/ab/abcdef123....pdf
    """

    def __init__(self, base_path: Path) -> None:
        """Initialize filesystem store.

        Args:
            base_path: Root directory for blob storage
        """
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for_ref(self, ref: str) -> Path:
        """Get filesystem path for a ref. Rejects anything not issued by put()."""
        if not _REF_PATTERN.match(ref):
            raise KeyError(f"Malformed blob ref: {ref!r}")
        return self.base_path / ref[:2] / ref

    def put(self, content: bytes, filename: str | None = None) -> str:
        """Store content and return its ref."""
        ref = uuid.uuid4().hex + _extension(filename)
        path = self._path_for_ref(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return ref

    def retrieve(self, ref: str) -> bytes:
        """Retrieve content by ref."""
        path = self._path_for_ref(ref)
        if not path.exists():
            raise KeyError(f"Blob not found: {ref}")
        return path.read_bytes()

    def exists(self, ref: str) -> bool:
        """Check if a blob exists."""
        try:
            return self._path_for_ref(ref).exists()
        except KeyError:
            return False

    def release(self, ref: str) -> bool:
        """Delete a blob.

        Returns:
            True if the blob was deleted, False if not found
        """
        path = self._path_for_ref(ref)
        if not path.exists():
            return False
        path.unlink()
        return True


def _extension(filename: str | None) -> str:
    if not filename:
        return ""
    suffix = Path(filename).suffix.lower()
    if re.fullmatch(r"\.[a-z0-9]{1,10}", suffix):
        return suffix
    return ""
