"""ShareService: the creation and resolution paths.

Creation:
    validate draft -> hash credentials -> seal text / store blob
    -> allocate short id + secondary id -> insert

Resolution:
    read -> AccessGate -> ViewAccountant -> open envelope -> record access

Owner operations (analytics, delete) are authorized by the owner token
returned once at creation.
"""

from __future__ import annotations

import hmac
import secrets
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sharegate.contracts.enums import (
    ConsumeOutcome,
    ContentKind,
    DenialReason,
    IdDomain,
    ItemType,
)
from sharegate.contracts.errors import (
    CapacityExhaustedError,
    IdentifierConflictError,
    ItemNotFoundError,
    OwnerTokenInvalidError,
    WeakPasswordError,
)
from sharegate.contracts.items import ClientInfo, Credentials, Item, ItemDraft
from sharegate.contracts.results import (
    AnalyticsSummary,
    CreatedItem,
    DescribeResult,
    ItemDescription,
    ResolvedContent,
    ResolveResult,
)
from sharegate.core.blob_store import BlobStore, FilesystemBlobStore
from sharegate.core.logging import get_logger
from sharegate.core.security.credentials import CredentialHasher, password_problems
from sharegate.core.security.envelope import ContentEnvelope
from sharegate.core.store import ItemStore, ShareDB
from sharegate.engine.accountant import ViewAccountant
from sharegate.engine.analytics import build_access_record
from sharegate.engine.gate import AccessGate
from sharegate.engine.ids import IdAllocator

if TYPE_CHECKING:
    from sharegate.core.config import ShareGateSettings

DEFAULT_ANALYTICS_LIMIT = 50
MAX_ANALYTICS_LIMIT = 200

logger = get_logger(__name__)

_DEFAULT_ITEM_TYPES = {
    ContentKind.TEXT: ItemType.TEXT,
    ContentKind.REDIRECT: ItemType.URL,
    ContentKind.DOC_EXTRACT: ItemType.WORD,
    ContentKind.SLIDE_EXTRACT: ItemType.PPT,
    ContentKind.BLOB: ItemType.UNIVERSAL,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ShareService:
    """Publishes items and resolves them through their gates.

    Example:
        service = ShareService.from_settings(settings)
        created = service.create(ItemDraft(text="hello", view_limit=1))
        result = service.resolve(created.short_id)
        if result.ok:
            print(result.content.text)
    """

    def __init__(
        self,
        store: ItemStore,
        blob_store: BlobStore | None,
        envelope: ContentEnvelope,
        hasher: CredentialHasher,
        *,
        allocator: IdAllocator | None = None,
        enforce_password_strength: bool = True,
        analytics_enabled: bool = True,
        analytics_default_limit: int = DEFAULT_ANALYTICS_LIMIT,
        analytics_max_limit: int = MAX_ANALYTICS_LIMIT,
        clock: Callable[[], datetime] | None = None,
        db: ShareDB | None = None,
    ) -> None:
        """Initialize service.

        Args:
            store: Item store
            blob_store: Blob store for uploads (None disables blob items)
            envelope: Seals and opens textual payloads
            hasher: Hashes and verifies passwords and quiz answers
            allocator: Identifier allocator (defaults to one over store)
            enforce_password_strength: Reject weak gate passwords
            analytics_enabled: Record an AccessRecord per consumed view
            analytics_default_limit: Recent accesses returned by default
            analytics_max_limit: Upper bound on recent accesses returned
            clock: Current-time source (timezone-aware)
            db: Database owned by this service, closed by close()
        """
        self._store = store
        self._blob_store = blob_store
        self._envelope = envelope
        self._hasher = hasher
        self._allocator = allocator or IdAllocator(store)
        self._gate = AccessGate(hasher)
        self._accountant = ViewAccountant(store)
        self._enforce_password_strength = enforce_password_strength
        self._analytics_enabled = analytics_enabled
        self._analytics_default_limit = analytics_default_limit
        self._analytics_max_limit = analytics_max_limit
        self._clock = clock or _utcnow
        self._db = db

    @classmethod
    def from_settings(cls, settings: ShareGateSettings) -> ShareService:
        """Build a service and its collaborators from validated settings."""
        db = ShareDB.from_url(
            settings.database.url,
            echo=settings.database.echo,
            busy_timeout_seconds=settings.database.busy_timeout_seconds,
        )
        store = ItemStore(db)
        return cls(
            store,
            FilesystemBlobStore(settings.blob_store.base_path),
            ContentEnvelope(
                settings.envelope.master_secret,
                kdf_iterations=settings.envelope.kdf_iterations,
            ),
            CredentialHasher(rounds=settings.credentials.bcrypt_rounds),
            allocator=IdAllocator(
                store,
                length=settings.identifiers.length,
                max_attempts=settings.identifiers.max_attempts,
            ),
            enforce_password_strength=settings.credentials.enforce_password_strength,
            analytics_enabled=settings.analytics.enabled,
            analytics_default_limit=settings.analytics.default_limit,
            analytics_max_limit=settings.analytics.max_limit,
            db=db,
        )

    @property
    def store(self) -> ItemStore:
        return self._store

    @property
    def blob_store(self) -> BlobStore | None:
        return self._blob_store

    @property
    def envelope(self) -> ContentEnvelope:
        return self._envelope

    def close(self) -> None:
        if self._db is not None:
            self._db.close()

    # === Creation ===

    def create(self, draft: ItemDraft) -> CreatedItem:
        """Publish a new item.

        Args:
            draft: Validated producer input

        Returns:
            CreatedItem carrying the public ids and the owner token

        Raises:
            WeakPasswordError: If the gate password fails the strength rules
            ValueError: If expires_at is not in the future, or a blob is
                given without a blob store
            ConfigurationMissingError: If textual content is given and no
                master secret is configured
            CapacityExhaustedError: If no free identifier could be allocated
        """
        now = self._clock()

        if draft.expires_at is not None and draft.expires_at <= now:
            raise ValueError("expires_at must be in the future")

        password_hash = None
        if draft.password:
            if self._enforce_password_strength:
                problems = password_problems(draft.password)
                if problems:
                    raise WeakPasswordError(problems)
            password_hash = self._hasher.hash_password(draft.password)

        quiz_question = None
        quiz_answer_hash = None
        if draft.quiz_question and draft.quiz_answer:
            quiz_question = draft.quiz_question.strip()
            quiz_answer_hash = self._hasher.hash_quiz_answer(draft.quiz_answer)

        content_kind = draft.content_kind
        payload = self._payload_for(draft, content_kind)
        blob_ref = self._store_blob(draft)

        if draft.declared_type:
            item_type = ItemType.from_declared(draft.declared_type)
        else:
            item_type = _DEFAULT_ITEM_TYPES[content_kind]

        try:
            item = self._insert_with_fresh_ids(
                lambda short_id, secondary_id: Item(
                    item_id=uuid.uuid4().hex,
                    short_id=short_id,
                    secondary_id=secondary_id,
                    item_type=item_type,
                    content_kind=content_kind,
                    content_payload=payload,
                    blob_ref=blob_ref,
                    name=draft.name,
                    created_at=now,
                    owner_token=secrets.token_urlsafe(32),
                    view_limit=draft.view_limit,
                    expires_at=draft.expires_at,
                    unlock_at=draft.resolve_unlock_at(now),
                    password_hash=password_hash,
                    quiz_question=quiz_question,
                    quiz_answer_hash=quiz_answer_hash,
                )
            )
        except Exception:
            # The record never landed, so nothing references the blob
            if blob_ref is not None:
                self._release_blob(blob_ref, item_id=None)
            raise

        logger.info(
            "item_created",
            item_id=item.item_id,
            short_id=item.short_id,
            content_kind=item.content_kind.value,
            has_password=item.has_password,
            has_quiz=item.has_quiz,
            view_limit=item.view_limit,
        )
        return CreatedItem(
            item_id=item.item_id,
            short_id=item.short_id,
            secondary_id=item.secondary_id,
            item_type=item.item_type,
            content_kind=item.content_kind,
            name=item.name,
            owner_token=item.owner_token,
            has_password=item.has_password,
            has_quiz=item.has_quiz,
            unlock_at=item.unlock_at,
            expires_at=item.expires_at,
            view_limit=item.view_limit,
        )

    def _payload_for(self, draft: ItemDraft, content_kind: ContentKind) -> str | None:
        if content_kind is ContentKind.TEXT:
            assert draft.text is not None
            return self._envelope.seal(draft.text)
        if content_kind.is_textual:
            assert draft.extracted_text is not None
            return self._envelope.seal(draft.extracted_text)
        if content_kind is ContentKind.REDIRECT:
            return draft.url
        return None

    def _store_blob(self, draft: ItemDraft) -> str | None:
        if draft.blob is None:
            return None
        if self._blob_store is None:
            raise ValueError("Blob uploads need a configured blob store")
        return self._blob_store.put(draft.blob, draft.filename)

    def _insert_with_fresh_ids(self, build: Callable[[str, str], Item]) -> Item:
        """Allocate both ids and insert, retrying a lost insert race.

        The existence check and the insert are separate statements, so a
        concurrent creation can take the same candidate in between. The
        UNIQUE constraint catches that and it counts as one more collision.
        """
        attempts = self._allocator.max_attempts
        for attempt in range(1, attempts + 1):
            short_id = self._allocator.allocate(IdDomain.SHORT_ID)
            secondary_id = self._allocator.allocate(IdDomain.SECONDARY_ID)
            try:
                return self._store.insert(build(short_id, secondary_id))
            except IdentifierConflictError:
                logger.warning(
                    "identifier_insert_conflict",
                    attempt=attempt,
                    max_attempts=attempts,
                )
        raise CapacityExhaustedError(IdDomain.SHORT_ID, attempts)

    # === Resolution ===

    def resolve(
        self,
        short_id: str,
        credentials: Credentials | None = None,
        *,
        client: ClientInfo | None = None,
        now: datetime | None = None,
    ) -> ResolveResult:
        """Resolve a short id to its content, consuming one view.

        Denials are returned, not raised. A denied request never consumes
        a view.

        Raises:
            EnvelopeCorruptedError: If the sealed payload fails to open
            ConfigurationMissingError: If a textual item is resolved and no
                master secret is configured
        """
        if now is None:
            now = self._clock()

        item = self._store.find_by_short_id(short_id)
        decision = self._gate.evaluate(item, credentials, now)
        if not decision.allowed:
            logger.debug(
                "access_denied",
                short_id=short_id,
                reason=decision.reason.value if decision.reason else None,
            )
            return ResolveResult.denied(decision)

        assert item is not None
        # Opened before consuming: a missing secret or corrupt envelope costs no view
        try:
            content = self._open_content(item)
        except Exception as e:
            logger.error(
                "content_open_failed",
                item_id=item.item_id,
                short_id=short_id,
                error_type=type(e).__name__,
            )
            raise

        outcome = self._accountant.try_consume(item.item_id)
        if outcome is ConsumeOutcome.NOT_FOUND:
            return ResolveResult.denied_for(DenialReason.NOT_FOUND)
        if outcome is ConsumeOutcome.QUOTA_EXHAUSTED:
            return ResolveResult.denied_for(DenialReason.QUOTA_EXHAUSTED)

        if self._analytics_enabled:
            self._record_access(item, client, now)

        view_count = self._store.view_count(item.item_id)
        if view_count is None:
            view_count = item.view_count + 1
        return ResolveResult.success(content, view_count)

    def _open_content(self, item: Item) -> ResolvedContent:
        kind = item.content_kind
        if kind is ContentKind.REDIRECT:
            return ResolvedContent(kind, item.name, redirect_url=item.content_payload)
        if kind is ContentKind.BLOB:
            return ResolvedContent(kind, item.name, blob_ref=item.blob_ref)

        assert item.content_payload is not None
        text = self._envelope.open(item.content_payload)
        return ResolvedContent(kind, item.name, text=text, blob_ref=item.blob_ref)

    def _record_access(self, item: Item, client: ClientInfo | None, now: datetime) -> None:
        """Best-effort: a failed analytics write never fails the resolution."""
        try:
            self._store.record_access(build_access_record(item.item_id, client, now))
        except Exception as e:
            logger.warning("access_record_failed", item_id=item.item_id, error=str(e))

    # === Preview ===

    def describe(self, short_id: str, now: datetime | None = None) -> DescribeResult:
        """Describe an item's gates without consuming a view or exposing content.

        Items that can never be resolved again (missing, expired, out of
        views) are reported with the same reason resolution would give.
        """
        if now is None:
            now = self._clock()

        item = self._store.find_by_short_id(short_id)
        decision = self._gate.evaluate(item, None, now)
        if decision.reason is not None and decision.reason.is_terminal:
            return DescribeResult(reason=decision.reason)

        assert item is not None
        is_locked = item.unlock_at is not None and now < item.unlock_at
        return DescribeResult(
            description=ItemDescription(
                short_id=item.short_id,
                name=item.name,
                item_type=item.item_type,
                has_password=item.has_password,
                has_quiz=item.has_quiz,
                # Withheld until the delay passes, as in resolution
                quiz_question=None if is_locked else item.quiz_question,
                has_delayed_access=item.unlock_at is not None,
                is_locked=is_locked,
                unlock_at=item.unlock_at,
                views_remaining=item.views_remaining,
            )
        )

    def check_quiz_answer(self, short_id: str, answer: str) -> bool:
        """Check a quiz answer without resolving the item.

        Raises:
            ItemNotFoundError: If no item has short_id
            ValueError: If the item has no quiz
        """
        item = self._store.find_by_short_id(short_id)
        if item is None:
            raise ItemNotFoundError(short_id)
        if not item.has_quiz:
            raise ValueError(f"Item {short_id} has no quiz")
        assert item.quiz_answer_hash is not None
        return self._hasher.verify_quiz_answer(answer, item.quiz_answer_hash)

    # === Owner operations ===

    def analytics(
        self,
        short_id: str,
        owner_token: str,
        limit: int | None = None,
    ) -> AnalyticsSummary:
        """Usage summary for the item's owner.

        Args:
            short_id: Item to summarize
            owner_token: Token returned at creation
            limit: Recent accesses to include, clamped to the configured
                maximum; missing or non-positive falls back to the default

        Raises:
            ItemNotFoundError: If no item has short_id
            OwnerTokenInvalidError: If owner_token does not match
        """
        item = self._owned_item(short_id, owner_token)

        if limit is None or limit < 1:
            limit = self._analytics_default_limit
        limit = min(limit, self._analytics_max_limit)

        breakdown, recent = self._store.access_summary(item.item_id, limit)
        return AnalyticsSummary(
            short_id=item.short_id,
            name=item.name,
            created_at=item.created_at,
            total_views=item.view_count,
            device_breakdown=breakdown,
            recent_access=[
                {
                    "accessed_at": record.accessed_at.isoformat(),
                    "device_type": record.device_type,
                    "user_agent": record.user_agent,
                }
                for record in recent
            ],
        )

    def delete(self, short_id: str, owner_token: str) -> None:
        """Delete an item on its owner's request, releasing its blob.

        Raises:
            ItemNotFoundError: If no item has short_id
            OwnerTokenInvalidError: If owner_token does not match
        """
        item = self._owned_item(short_id, owner_token)
        if item.blob_ref is not None:
            self._release_blob(item.blob_ref, item_id=item.item_id)
        if not self._store.delete(item.item_id):
            # Swept between the read and the delete
            raise ItemNotFoundError(short_id)
        logger.info("item_deleted", item_id=item.item_id, short_id=short_id)

    def _owned_item(self, short_id: str, owner_token: str) -> Item:
        item = self._store.find_by_short_id(short_id)
        if item is None:
            raise ItemNotFoundError(short_id)
        if not hmac.compare_digest(
            item.owner_token.encode("utf-8"), owner_token.encode("utf-8")
        ):
            logger.warning("owner_token_rejected", short_id=short_id)
            raise OwnerTokenInvalidError(short_id)
        return item

    def _release_blob(self, ref: str, *, item_id: str | None) -> None:
        if self._blob_store is None:
            return
        try:
            self._blob_store.release(ref)
        except Exception as e:
            logger.warning("blob_release_failed", item_id=item_id, blob_ref=ref, error=str(e))
