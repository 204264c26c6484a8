"""ItemStore: durable record of shared items.

The engine needs read, conditional-write and delete semantics from the
store and nothing else. Every method runs in its own transaction via
ShareDB.connection(), so each call is atomic on its own.
"""

from collections import Counter
from datetime import datetime
from typing import Any

from sqlalchemy import (
    ColumnElement,
    Select,
    and_,
    delete,
    exists,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError

from sharegate.contracts.enums import ContentKind, IdDomain
from sharegate.contracts.errors import IdentifierConflictError
from sharegate.contracts.items import AccessRecord, Item
from sharegate.core.store.database import ShareDB
from sharegate.core.store.repositories import (
    AccessRecordRepository,
    ItemRepository,
    as_utc,
)
from sharegate.core.store.schema import access_logs_table, items_table

_DOMAIN_COLUMNS = {
    IdDomain.SHORT_ID: items_table.c.short_id,
    IdDomain.SECONDARY_ID: items_table.c.secondary_id,
}

_TEXTUAL_KINDS = [kind.value for kind in ContentKind if kind.is_textual]


class ItemStore:
    """SQLAlchemy Core implementation of the item store.

    Example:
        db = ShareDB.in_memory()
        store = ItemStore(db)

        store.insert(item)
        if store.conditional_increment_view_count(item.item_id):
            ...  # one view consumed
    """

    def __init__(self, db: ShareDB) -> None:
        self._db = db
        self._items = ItemRepository()
        self._access = AccessRecordRepository()

    # === Reads ===

    def find_by_short_id(self, short_id: str) -> Item | None:
        return self._find_one(items_table.c.short_id == short_id)

    def find_by_secondary_id(self, secondary_id: str) -> Item | None:
        return self._find_one(items_table.c.secondary_id == secondary_id)

    def find_by_id(self, item_id: str) -> Item | None:
        return self._find_one(items_table.c.item_id == item_id)

    def _find_one(self, condition: ColumnElement[bool]) -> Item | None:
        query = select(items_table).where(condition)
        with self._db.connection() as conn:
            row = conn.execute(query).first()
        if row is None:
            return None
        return self._items.load(row)

    def identifier_exists(self, domain: IdDomain, candidate: str) -> bool:
        """Whether candidate is already taken in the given domain."""
        column = _DOMAIN_COLUMNS[domain]
        query = select(exists().where(column == candidate))
        with self._db.connection() as conn:
            return bool(conn.execute(query).scalar())

    def list_expired(self, now: datetime) -> list[Item]:
        """Items with a non-null expires_at strictly before now."""
        now_utc = as_utc(now)
        query = select(items_table).where(
            and_(
                items_table.c.expires_at.isnot(None),
                items_table.c.expires_at < now_utc,
            )
        )
        return self._load_all(query)

    def list_over_quota(self) -> list[Item]:
        """Items with a view limit whose count has reached it."""
        query = select(items_table).where(
            and_(
                items_table.c.view_limit.isnot(None),
                items_table.c.view_count >= items_table.c.view_limit,
            )
        )
        return self._load_all(query)

    def list_textual(self) -> list[Item]:
        """Items whose payload is (or should be) sealed text."""
        query = select(items_table).where(
            and_(
                items_table.c.content_kind.in_(_TEXTUAL_KINDS),
                items_table.c.content_payload.isnot(None),
            )
        )
        return self._load_all(query)

    def _load_all(self, query: Select[Any]) -> list[Item]:
        with self._db.connection() as conn:
            rows = conn.execute(query).fetchall()
        return [self._items.load(row) for row in rows]

    # === Writes ===

    def insert(self, item: Item) -> Item:
        """Insert a new item.

        Raises:
            IdentifierConflictError: If short_id, secondary_id or owner_token
                is already taken (a concurrent creation won the race)
        """
        try:
            with self._db.connection() as conn:
                conn.execute(items_table.insert().values(**self._items.dump(item)))
        except IntegrityError as e:
            raise IdentifierConflictError(
                f"Identifier already taken for item {item.item_id}: {e.orig}"
            ) from e
        return item

    def conditional_increment_view_count(self, item_id: str) -> bool:
        """Increment view_count only while it is below view_limit.

        One UPDATE statement: the database evaluates the quota condition and
        applies the increment under the same row lock, so concurrent callers
        can never push view_count past view_limit.

        Returns:
            True iff the increment happened
        """
        statement = (
            update(items_table)
            .where(
                and_(
                    items_table.c.item_id == item_id,
                    or_(
                        items_table.c.view_limit.is_(None),
                        items_table.c.view_count < items_table.c.view_limit,
                    ),
                )
            )
            .values(view_count=items_table.c.view_count + 1)
        )
        with self._db.connection() as conn:
            result = conn.execute(statement)
        return result.rowcount == 1

    def view_count(self, item_id: str) -> int | None:
        """Current persisted view count, or None if the item is gone."""
        query = select(items_table.c.view_count).where(items_table.c.item_id == item_id)
        with self._db.connection() as conn:
            return conn.execute(query).scalar()

    def delete(self, item_id: str) -> bool:
        """Delete an item and its access records in one transaction.

        Returns:
            True if the item was deleted, False if it was already gone
        """
        with self._db.connection() as conn:
            conn.execute(
                delete(access_logs_table).where(access_logs_table.c.item_id == item_id)
            )
            result = conn.execute(
                delete(items_table).where(items_table.c.item_id == item_id)
            )
        return result.rowcount == 1

    def replace_content_payload(self, item_id: str, payload: str) -> bool:
        """Rewrite a textual payload in place (legacy sealing migration only)."""
        statement = (
            update(items_table)
            .where(
                and_(
                    items_table.c.item_id == item_id,
                    items_table.c.content_kind.in_(_TEXTUAL_KINDS),
                )
            )
            .values(content_payload=payload)
        )
        with self._db.connection() as conn:
            result = conn.execute(statement)
        return result.rowcount == 1

    # === Access analytics ===

    def record_access(self, record: AccessRecord) -> None:
        with self._db.connection() as conn:
            conn.execute(
                access_logs_table.insert().values(
                    access_id=record.access_id,
                    item_id=record.item_id,
                    user_agent=record.user_agent,
                    ip_hash=record.ip_hash,
                    device_type=record.device_type,
                    accessed_at=as_utc(record.accessed_at),
                )
            )

    def access_summary(
        self, item_id: str, limit: int
    ) -> tuple[dict[str, int], list[AccessRecord]]:
        """Device breakdown over all accesses plus the most recent ones.

        Returns:
            (device_type -> count, newest-first AccessRecords up to limit)
        """
        breakdown_query = (
            select(access_logs_table.c.device_type, func.count())
            .where(access_logs_table.c.item_id == item_id)
            .group_by(access_logs_table.c.device_type)
        )
        recent_query = (
            select(access_logs_table)
            .where(access_logs_table.c.item_id == item_id)
            .order_by(access_logs_table.c.accessed_at.desc())
            .limit(limit)
        )
        with self._db.connection() as conn:
            breakdown: Counter[str] = Counter()
            for device_type, count in conn.execute(breakdown_query):
                breakdown[device_type or "Unknown"] += count
            recent = [self._access.load(row) for row in conn.execute(recent_query)]
        return dict(breakdown), recent
