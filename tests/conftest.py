# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
import uuid
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from sharegate.contracts import ContentKind, Item, ItemType
from sharegate.core.blob_store import FilesystemBlobStore
from sharegate.core.security import ContentEnvelope, CredentialHasher
from sharegate.core.store import ItemStore, ShareDB

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo configure_logging so no test logs into another test's captured stream."""
    yield
    structlog.reset_defaults()


MASTER_SECRET = "test-master-secret-0123456789abcdef"

# Cheapest cost bcrypt accepts; real deployments use 10+
FAST_BCRYPT_ROUNDS = 4


@pytest.fixture
def master_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    """Master secret exported the way deployments provide it."""
    monkeypatch.setenv("SHAREGATE_MASTER_SECRET", MASTER_SECRET)
    return MASTER_SECRET


@pytest.fixture
def envelope() -> ContentEnvelope:
    return ContentEnvelope(MASTER_SECRET)


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(rounds=FAST_BCRYPT_ROUNDS)


@pytest.fixture
def db() -> Iterator[ShareDB]:
    database = ShareDB.in_memory()
    yield database
    database.close()


@pytest.fixture
def file_db(tmp_path: Path) -> Iterator[ShareDB]:
    """File-backed SQLite, needed whenever several threads share the store."""
    database = ShareDB.from_url(f"sqlite:///{tmp_path / 'sharegate.db'}")
    yield database
    database.close()


@pytest.fixture
def store(db: ShareDB) -> ItemStore:
    return ItemStore(db)


@pytest.fixture
def blob_store(tmp_path: Path) -> FilesystemBlobStore:
    return FilesystemBlobStore(tmp_path / "blobs")


@pytest.fixture
def make_item() -> Callable[..., Item]:
    """Factory for Item records with unique ids and no gates."""

    def _make(**overrides: Any) -> Item:
        token = uuid.uuid4().hex
        fields: dict[str, Any] = {
            "item_id": token,
            "short_id": token[:8],
            "secondary_id": token[8:16],
            "item_type": ItemType.URL,
            "content_kind": ContentKind.REDIRECT,
            "content_payload": "https://example.com/",
            "blob_ref": None,
            "name": "example",
            "created_at": datetime.now(UTC),
            "owner_token": token[16:],
        }
        fields.update(overrides)
        return Item(**fields)

    return _make
