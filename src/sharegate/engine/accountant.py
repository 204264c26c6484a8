"""View accounting: consume one view of an item, race-safe.

The store performs "increment where count < limit" as one conditional
UPDATE, so across any number of threads or processes an item with
view_limit = N is consumed at most N times. The accountant only
interprets the outcome.
"""

from __future__ import annotations

from typing import Protocol

from sharegate.contracts.enums import ConsumeOutcome
from sharegate.contracts.items import Item
from sharegate.core.logging import get_logger

logger = get_logger(__name__)


class ViewCounterStore(Protocol):
    """Minimal store interface required by ViewAccountant."""

    def conditional_increment_view_count(self, item_id: str) -> bool:
        """Increment under quota. True iff the increment happened."""
        ...

    def find_by_id(self, item_id: str) -> Item | None:
        """Re-read an item to explain a refused increment."""
        ...


class ViewAccountant:
    """Consumes views through the store's atomic conditional increment.

    Call only after AccessGate has allowed the request. The outcome here,
    not the gate's quota pre-check, decides whether content is returned.
    """

    def __init__(self, store: ViewCounterStore) -> None:
        self._store = store

    def try_consume(self, item_id: str) -> ConsumeOutcome:
        """Consume one view of item_id.

        Returns:
            CONSUMED if the view was counted, QUOTA_EXHAUSTED if the limit
            was already reached, NOT_FOUND if the item no longer exists
        """
        if self._store.conditional_increment_view_count(item_id):
            return ConsumeOutcome.CONSUMED

        # Refused: either the quota is spent or the item was swept/deleted
        if self._store.find_by_id(item_id) is None:
            return ConsumeOutcome.NOT_FOUND

        logger.info("view_quota_exhausted", item_id=item_id)
        return ConsumeOutcome.QUOTA_EXHAUSTED
