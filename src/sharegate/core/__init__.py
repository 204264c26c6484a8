# src/sharegate/core/__init__.py
"""Core infrastructure: configuration, logging, item store, blob store, security."""

from sharegate.core.blob_store import (
    BlobStore,
    FilesystemBlobStore,
)
from sharegate.core.config import (
    DatabaseSettings,
    ShareGateSettings,
    SweeperSettings,
    load_settings,
)
from sharegate.core.logging import (
    configure_logging,
    get_logger,
)
from sharegate.core.store import (
    ItemStore,
    ShareDB,
)

__all__ = [
    "BlobStore",
    "DatabaseSettings",
    "FilesystemBlobStore",
    "ItemStore",
    "ShareDB",
    "ShareGateSettings",
    "SweeperSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
]
