"""Repository layer for item store records.

Handles the seam between SQLAlchemy rows (strings, naive SQLite
timestamps) and domain objects (strict enum types, UTC-aware datetimes).
This is NOT a trust boundary - if the database holds an unknown enum
value we crash. The store is OUR data.
"""

from datetime import UTC, datetime
from typing import Any

from sharegate.contracts.enums import ContentKind, ItemType
from sharegate.contracts.items import AccessRecord, Item


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive values (SQLite drops tzinfo on the way out)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ItemRepository:
    """Repository for Item records."""

    def load(self, row: Any) -> Item:
        """Load Item from database row.

        Converts item_type and content_kind strings to enums.
        """
        created_at = as_utc(row.created_at)
        assert created_at is not None  # NOT NULL column
        return Item(
            item_id=row.item_id,
            short_id=row.short_id,
            secondary_id=row.secondary_id,
            item_type=ItemType(row.item_type),  # Convert HERE
            content_kind=ContentKind(row.content_kind),  # Convert HERE
            content_payload=row.content_payload,
            blob_ref=row.blob_ref,
            name=row.name,
            created_at=created_at,
            owner_token=row.owner_token,
            view_count=row.view_count,
            view_limit=row.view_limit,
            expires_at=as_utc(row.expires_at),
            unlock_at=as_utc(row.unlock_at),
            password_hash=row.password_hash,
            quiz_question=row.quiz_question,
            quiz_answer_hash=row.quiz_answer_hash,
        )

    def dump(self, item: Item) -> dict[str, Any]:
        """Column values for inserting an Item."""
        return {
            "item_id": item.item_id,
            "short_id": item.short_id,
            "secondary_id": item.secondary_id,
            "item_type": item.item_type.value,
            "name": item.name,
            "content_kind": item.content_kind.value,
            "content_payload": item.content_payload,
            "blob_ref": item.blob_ref,
            "password_hash": item.password_hash,
            "quiz_question": item.quiz_question,
            "quiz_answer_hash": item.quiz_answer_hash,
            "unlock_at": as_utc(item.unlock_at),
            "expires_at": as_utc(item.expires_at),
            "view_limit": item.view_limit,
            "view_count": item.view_count,
            "owner_token": item.owner_token,
            "created_at": as_utc(item.created_at),
        }


class AccessRecordRepository:
    """Repository for AccessRecord records.

    No enum conversion needed - all fields are primitives.
    """

    def load(self, row: Any) -> AccessRecord:
        accessed_at = as_utc(row.accessed_at)
        assert accessed_at is not None  # NOT NULL column
        return AccessRecord(
            access_id=row.access_id,
            item_id=row.item_id,
            accessed_at=accessed_at,
            device_type=row.device_type,
            user_agent=row.user_agent,
            ip_hash=row.ip_hash,
        )
