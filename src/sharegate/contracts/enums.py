"""All status codes, kinds and outcomes used across subsystem boundaries.

Enums that are persisted use (str, Enum) so the stored column value is the
enum value itself. The store's repository layer converts back on read and
crashes on values it does not recognise.
"""

from enum import Enum


class ContentKind(str, Enum):
    """What an item's content payload holds.

    Uses (str, Enum) because this IS stored in the database
    (items.content_kind).

    Values:
        BLOB: Externally stored object, referenced by items.blob_ref
        REDIRECT: Literal target URL in items.content_payload
        TEXT: Sealed inline text
        DOC_EXTRACT: Sealed text extracted from an uploaded document
        SLIDE_EXTRACT: Sealed text extracted from an uploaded slide deck
    """

    BLOB = "blob"
    REDIRECT = "redirect"
    TEXT = "text"
    DOC_EXTRACT = "doc_extract"
    SLIDE_EXTRACT = "slide_extract"

    @property
    def is_textual(self) -> bool:
        """Whether the payload is sealed text."""
        return self in _TEXTUAL_KINDS


_TEXTUAL_KINDS = frozenset(
    {ContentKind.TEXT, ContentKind.DOC_EXTRACT, ContentKind.SLIDE_EXTRACT}
)


class ItemType(str, Enum):
    """Display classification of an item.

    Uses (str, Enum) for database serialization to items.item_type.
    """

    PDF = "pdf"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ZIP = "zip"
    URL = "url"
    TEXT = "text"
    WORD = "word"
    PPT = "ppt"
    UNIVERSAL = "universal"

    @classmethod
    def from_declared(cls, declared: str | None) -> "ItemType":
        """Map a producer-declared type name to an ItemType.

        Unknown or missing names map to UNIVERSAL.

        Example:
            >>> ItemType.from_declared("archive")
            <ItemType.ZIP: 'zip'>
            >>> ItemType.from_declared("spreadsheet")
            <ItemType.UNIVERSAL: 'universal'>
        """
        if not declared:
            return cls.UNIVERSAL
        return _DECLARED_TYPES.get(declared.strip().lower(), cls.UNIVERSAL)


_DECLARED_TYPES = {
    "pdf": ItemType.PDF,
    "image": ItemType.IMAGE,
    "video": ItemType.VIDEO,
    "audio": ItemType.AUDIO,
    "archive": ItemType.ZIP,
    "zip": ItemType.ZIP,
    "url": ItemType.URL,
    "text": ItemType.TEXT,
    "document": ItemType.WORD,
    "word": ItemType.WORD,
    "presentation": ItemType.PPT,
    "ppt": ItemType.PPT,
}


class IdDomain(str, Enum):
    """Uniqueness domain for public identifiers.

    The two domains are independent: the same string may appear once as a
    short id and once as a secondary id.
    """

    SHORT_ID = "short_id"
    SECONDARY_ID = "secondary_id"


class DenialReason(str, Enum):
    """Why the access gate refused an item.

    Declaration order matches evaluation order.
    """

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    QUOTA_EXHAUSTED = "quota_exhausted"
    LOCKED = "locked"
    QUIZ_FAILED = "quiz_failed"
    PASSWORD_REQUIRED = "password_required"
    PASSWORD_INVALID = "password_invalid"

    @property
    def is_terminal(self) -> bool:
        """Whether retrying with other credentials can never succeed."""
        return self in (
            DenialReason.NOT_FOUND,
            DenialReason.EXPIRED,
            DenialReason.QUOTA_EXHAUSTED,
        )


class ConsumeOutcome(str, Enum):
    """Result of trying to consume one view of an item."""

    CONSUMED = "consumed"
    QUOTA_EXHAUSTED = "quota_exhausted"
    NOT_FOUND = "not_found"
