"""Operation outcomes and results.

These types answer: "What did an operation produce?"

IMPORTANT:
- Denials are values. GateDecision and ResolveResult carry a DenialReason,
  never an exception.
- Denial results carry only what is needed to prompt for the right
  credential (unlock time, quiz question) and never content.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sharegate.contracts.enums import ContentKind, DenialReason, ItemType


@dataclass(frozen=True)
class GateDecision:
    """Result of evaluating an item's gates.

    Use the factory methods to create instances.
    """

    allowed: bool
    reason: DenialReason | None = None
    unlock_at: datetime | None = None
    quiz_question: str | None = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls,
        reason: DenialReason,
        *,
        unlock_at: datetime | None = None,
        quiz_question: str | None = None,
    ) -> "GateDecision":
        return cls(
            allowed=False,
            reason=reason,
            unlock_at=unlock_at,
            quiz_question=quiz_question,
        )


@dataclass(frozen=True)
class ResolvedContent:
    """Content handed to a consumer after a successful resolution.

    Exactly the fields relevant to content_kind are set:
    - BLOB: blob_ref
    - REDIRECT: redirect_url
    - TEXT: text
    - DOC_EXTRACT / SLIDE_EXTRACT: text and blob_ref (the original upload)
    """

    content_kind: ContentKind
    name: str | None
    text: str | None = field(default=None, repr=False)
    redirect_url: str | None = None
    blob_ref: str | None = None


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of resolving a short id.

    Either content is set (success) or denial is set.
    """

    content: ResolvedContent | None = None
    denial: GateDecision | None = None
    view_count: int | None = None

    @property
    def ok(self) -> bool:
        return self.content is not None

    @property
    def reason(self) -> DenialReason | None:
        """Denial reason, or None on success."""
        if self.denial is None:
            return None
        return self.denial.reason

    @classmethod
    def success(cls, content: ResolvedContent, view_count: int) -> "ResolveResult":
        return cls(content=content, view_count=view_count)

    @classmethod
    def denied(cls, decision: GateDecision) -> "ResolveResult":
        return cls(denial=decision)

    @classmethod
    def denied_for(cls, reason: DenialReason) -> "ResolveResult":
        return cls(denial=GateDecision.deny(reason))


@dataclass(frozen=True)
class CreatedItem:
    """What the creator gets back. owner_token is shown exactly once, here."""

    item_id: str
    short_id: str
    secondary_id: str
    item_type: ItemType
    content_kind: ContentKind
    name: str | None
    owner_token: str = field(repr=False)
    has_password: bool = False
    has_quiz: bool = False
    unlock_at: datetime | None = None
    expires_at: datetime | None = None
    view_limit: int | None = None


@dataclass(frozen=True)
class ItemDescription:
    """Content-free preview of an item's gates, for prompting consumers."""

    short_id: str
    name: str | None
    item_type: ItemType
    has_password: bool
    has_quiz: bool
    quiz_question: str | None
    has_delayed_access: bool
    is_locked: bool
    unlock_at: datetime | None
    views_remaining: int | None


@dataclass(frozen=True)
class DescribeResult:
    """Outcome of describe(): a description or a terminal denial."""

    description: ItemDescription | None = None
    reason: DenialReason | None = None

    @property
    def ok(self) -> bool:
        return self.description is not None


@dataclass
class AnalyticsSummary:
    """Owner-facing usage summary for one item."""

    short_id: str
    name: str | None
    created_at: datetime
    total_views: int
    device_breakdown: dict[str, int]
    recent_access: list[dict[str, Any]]

    @property
    def unique_device_types(self) -> int:
        return len(self.device_breakdown)


@dataclass
class SweepResult:
    """Result of one lifecycle sweep."""

    expired_deleted: int = 0
    over_quota_deleted: int = 0
    blobs_released: int = 0
    blob_failures: int = 0
    failed_ids: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def deleted_count(self) -> int:
        return self.expired_deleted + self.over_quota_deleted


@dataclass
class MigrationResult:
    """Result of sealing legacy plaintext payloads."""

    sealed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
