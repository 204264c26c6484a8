"""Shared contracts for cross-boundary data types.

All dataclasses, enums and exceptions that cross subsystem boundaries
are defined here.

Import pattern:
    from sharegate.contracts import Item, GateDecision, DenialReason
"""

from sharegate.contracts.enums import (
    ConsumeOutcome,
    ContentKind,
    DenialReason,
    IdDomain,
    ItemType,
)
from sharegate.contracts.errors import (
    CapacityExhaustedError,
    ConfigurationMissingError,
    EnvelopeCorruptedError,
    EnvelopeFormatError,
    IdentifierConflictError,
    ItemNotFoundError,
    OwnerTokenInvalidError,
    ShareGateError,
    WeakPasswordError,
)
from sharegate.contracts.items import (
    AccessRecord,
    ClientInfo,
    Credentials,
    Item,
    ItemDraft,
)
from sharegate.contracts.results import (
    AnalyticsSummary,
    CreatedItem,
    DescribeResult,
    GateDecision,
    ItemDescription,
    MigrationResult,
    ResolvedContent,
    ResolveResult,
    SweepResult,
)

__all__ = [
    # enums
    "ConsumeOutcome",
    "ContentKind",
    "DenialReason",
    "IdDomain",
    "ItemType",
    # errors
    "CapacityExhaustedError",
    "ConfigurationMissingError",
    "EnvelopeCorruptedError",
    "EnvelopeFormatError",
    "IdentifierConflictError",
    "ItemNotFoundError",
    "OwnerTokenInvalidError",
    "ShareGateError",
    "WeakPasswordError",
    # items
    "AccessRecord",
    "ClientInfo",
    "Credentials",
    "Item",
    "ItemDraft",
    # results
    "AnalyticsSummary",
    "CreatedItem",
    "DescribeResult",
    "GateDecision",
    "ItemDescription",
    "MigrationResult",
    "ResolveResult",
    "ResolvedContent",
    "SweepResult",
]
