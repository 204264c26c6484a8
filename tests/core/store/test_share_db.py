# tests/core/store/test_share_db.py
"""Tests for item store database connection management."""

from datetime import UTC, datetime
from pathlib import Path

import pytest


class TestShareDB:
    """Database connection and initialization."""

    def test_connect_creates_tables(self, tmp_path: Path) -> None:
        from sqlalchemy import inspect

        from sharegate.core.store import ShareDB

        db = ShareDB(f"sqlite:///{tmp_path / 'sharegate.db'}")
        tables = inspect(db.engine).get_table_names()

        assert "items" in tables
        assert "access_logs" in tables
        db.close()

    def test_sqlite_wal_mode(self, tmp_path: Path) -> None:
        from sqlalchemy import text

        from sharegate.core.store import ShareDB

        db = ShareDB(f"sqlite:///{tmp_path / 'sharegate.db'}")
        with db.engine.connect() as conn:
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
        db.close()

    def test_sqlite_foreign_keys_and_busy_timeout(self, tmp_path: Path) -> None:
        from sqlalchemy import text

        from sharegate.core.store import ShareDB

        db = ShareDB.from_url(
            f"sqlite:///{tmp_path / 'sharegate.db'}", busy_timeout_seconds=5
        )
        with db.engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
            assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 5000
        db.close()

    def test_in_memory(self) -> None:
        from sqlalchemy import inspect

        from sharegate.core.store import ShareDB

        with ShareDB.in_memory() as db:
            assert "items" in inspect(db.engine).get_table_names()

    def test_connection_rolls_back_on_error(self, tmp_path: Path) -> None:
        from sqlalchemy import func, select

        from sharegate.core.store import ShareDB, items_table

        db = ShareDB(f"sqlite:///{tmp_path / 'sharegate.db'}")
        with pytest.raises(RuntimeError), db.connection() as conn:
            conn.execute(
                items_table.insert().values(
                    item_id="i1",
                    short_id="abcdefgh",
                    secondary_id="hgfedcba",
                    item_type="url",
                    content_kind="redirect",
                    content_payload="https://example.com",
                    owner_token="tok",
                    view_count=0,
                    created_at=datetime.now(UTC),
                )
            )
            raise RuntimeError("boom")

        with db.connection() as conn:
            assert conn.execute(select(func.count()).select_from(items_table)).scalar() == 0
        db.close()
