"""SQLAlchemy table definitions for the item store.

Uses SQLAlchemy Core (not ORM) for explicit control over queries
and compatibility with multiple database backends.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# Shared metadata for all tables
metadata = MetaData()

# === Items ===

items_table = Table(
    "items",
    metadata,
    Column("item_id", String(64), primary_key=True),
    Column("short_id", String(32), nullable=False, unique=True),
    Column("secondary_id", String(32), nullable=False, unique=True),
    Column("item_type", String(16), nullable=False),
    Column("name", String(255)),
    # Tagged content: kind is the discriminator, payload the body
    Column("content_kind", String(16), nullable=False),
    Column("content_payload", Text),
    Column("blob_ref", String(256)),
    # Gates (immutable after insert)
    Column("password_hash", String(128)),
    Column("quiz_question", Text),
    Column("quiz_answer_hash", String(128)),
    Column("unlock_at", DateTime(timezone=True)),
    Column("expires_at", DateTime(timezone=True)),
    Column("view_limit", Integer),
    # Consumption counter - only changed by conditional increment
    Column("view_count", Integer, nullable=False, default=0),
    Column("owner_token", String(128), nullable=False, unique=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("view_count >= 0", name="ck_items_view_count_non_negative"),
    CheckConstraint(
        "view_limit IS NULL OR view_limit > 0", name="ck_items_view_limit_positive"
    ),
    CheckConstraint(
        "view_limit IS NULL OR view_count <= view_limit",
        name="ck_items_view_count_within_limit",
    ),
)

Index("ix_items_expires_at", items_table.c.expires_at)

# === Access Logs ===

access_logs_table = Table(
    "access_logs",
    metadata,
    Column("access_id", String(64), primary_key=True),
    Column(
        "item_id",
        String(64),
        ForeignKey("items.item_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("user_agent", String(512)),
    Column("ip_hash", String(64)),
    Column("device_type", String(16), nullable=False),
    Column("accessed_at", DateTime(timezone=True), nullable=False),
)

Index("ix_access_logs_item_id", access_logs_table.c.item_id)
