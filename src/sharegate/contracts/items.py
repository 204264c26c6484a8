"""Item contracts: the stored record, its creation draft, and access records.

Item is a strict contract - enum fields hold enums, never strings.
The repository layer handles string->enum conversion on reads.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from sharegate.contracts.enums import ContentKind, ItemType


@dataclass(frozen=True)
class Item:
    """A single shareable unit of content with its identifiers and gates.

    Gates are immutable once the item is created. Only view_count changes,
    and only through the store's conditional increment.
    """

    item_id: str
    short_id: str
    secondary_id: str
    item_type: ItemType  # Strict: enum only
    content_kind: ContentKind  # Strict: enum only
    content_payload: str | None
    blob_ref: str | None
    name: str | None
    created_at: datetime
    owner_token: str = field(repr=False)
    view_count: int = 0
    view_limit: int | None = None
    expires_at: datetime | None = None
    unlock_at: datetime | None = None
    password_hash: str | None = field(default=None, repr=False)
    quiz_question: str | None = None
    quiz_answer_hash: str | None = field(default=None, repr=False)

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    @property
    def has_quiz(self) -> bool:
        """Quiz protection needs both the question and the answer hash."""
        return bool(self.quiz_question) and self.quiz_answer_hash is not None

    @property
    def views_remaining(self) -> int | None:
        if self.view_limit is None:
            return None
        return max(0, self.view_limit - self.view_count)


@dataclass(frozen=True)
class AccessRecord:
    """One consumed resolution, kept for the owner's analytics."""

    access_id: str
    item_id: str
    accessed_at: datetime
    device_type: str
    user_agent: str | None = None
    ip_hash: str | None = None


@dataclass(frozen=True)
class Credentials:
    """What a consumer supplies when resolving an item."""

    password: str | None = None
    quiz_answer: str | None = None


@dataclass(frozen=True)
class ClientInfo:
    """Request-side details recorded for analytics. The raw IP is never stored."""

    user_agent: str | None = None
    ip_address: str | None = None


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ItemDraft(BaseModel):
    """Producer input for creating an item.

    Exactly one content source must be given: text, url, or blob bytes.
    An uploaded document may carry extracted_text alongside its blob,
    which is sealed like inline text.

    Example:
        draft = ItemDraft(
            text="meet at noon",
            password="P@ss1234",
            view_limit=1,
        )
    """

    model_config = {"frozen": True}

    name: str | None = Field(default=None, max_length=255)
    declared_type: str | None = Field(
        default=None, description="Producer-declared type (pdf, image, text, ...)"
    )

    text: str | None = Field(default=None, min_length=1)
    url: str | None = Field(default=None, min_length=1)
    blob: bytes | None = Field(default=None, repr=False)
    filename: str | None = None
    extracted_text: str | None = Field(default=None, min_length=1, repr=False)
    extract_kind: Literal["doc", "slide"] = "doc"

    password: str | None = Field(default=None, repr=False)
    quiz_question: str | None = None
    quiz_answer: str | None = Field(default=None, repr=False)
    view_limit: int | None = Field(default=None, gt=0)
    expires_at: datetime | None = None
    unlock_at: datetime | None = None
    unlock_after_seconds: int | None = Field(default=None, ge=0)

    @field_validator("expires_at", "unlock_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        """Naive datetimes are taken as UTC."""
        return _as_utc(v)

    @field_validator("url")
    @classmethod
    def validate_url_scheme(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v

    @model_validator(mode="after")
    def validate_single_content_source(self) -> "ItemDraft":
        sources = [s for s in (self.text, self.url, self.blob) if s is not None]
        if len(sources) != 1:
            raise ValueError("exactly one of text, url or blob is required")
        if self.extracted_text is not None and self.blob is None:
            raise ValueError("extracted_text is only valid with a blob upload")
        return self

    @model_validator(mode="after")
    def validate_quiz_pair(self) -> "ItemDraft":
        """Quiz question and answer come together or not at all."""
        has_question = bool(self.quiz_question and self.quiz_question.strip())
        has_answer = bool(self.quiz_answer and self.quiz_answer.strip())
        if has_question != has_answer:
            raise ValueError("quiz_question and quiz_answer must be given together")
        return self

    @model_validator(mode="after")
    def validate_unlock_options(self) -> "ItemDraft":
        if self.unlock_at is not None and self.unlock_after_seconds is not None:
            raise ValueError("give either unlock_at or unlock_after_seconds, not both")
        return self

    @property
    def content_kind(self) -> ContentKind:
        """Which ContentKind this draft will be stored as."""
        if self.text is not None:
            return ContentKind.TEXT
        if self.url is not None:
            return ContentKind.REDIRECT
        if self.extracted_text is not None:
            if self.extract_kind == "slide":
                return ContentKind.SLIDE_EXTRACT
            return ContentKind.DOC_EXTRACT
        return ContentKind.BLOB

    def resolve_unlock_at(self, now: datetime) -> datetime | None:
        """Absolute release time, turning a relative delay into a timestamp."""
        if self.unlock_after_seconds is not None:
            return now + timedelta(seconds=self.unlock_after_seconds)
        return self.unlock_at
