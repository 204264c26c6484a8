"""Seal textual payloads that were stored as plaintext.

Operator-only, run once when enabling sealing on an existing database.
Payloads that already look sealed are skipped, so the migration can be
re-run safely after a partial failure.
"""

from __future__ import annotations

from typing import Protocol

from sharegate.contracts.items import Item
from sharegate.contracts.results import MigrationResult
from sharegate.core.logging import get_logger
from sharegate.core.security.envelope import looks_sealed

logger = get_logger(__name__)


class MigratableStore(Protocol):
    """Minimal item store interface required by the migration."""

    def list_textual(self) -> list[Item]: ...

    def replace_content_payload(self, item_id: str, payload: str) -> bool: ...


class Sealer(Protocol):
    def seal(self, plaintext: str) -> str: ...


def seal_legacy_content(
    store: MigratableStore,
    envelope: Sealer,
    *,
    dry_run: bool = False,
) -> MigrationResult:
    """Seal every textual payload that is still plaintext.

    Args:
        store: Item store to scan and rewrite
        envelope: Envelope used for sealing
        dry_run: Report what would be sealed without writing

    Returns:
        MigrationResult with sealed, skipped and failed item ids
    """
    result = MigrationResult()

    for item in store.list_textual():
        payload = item.content_payload
        if not payload or looks_sealed(payload):
            result.skipped_ids.append(item.item_id)
            continue

        if dry_run:
            result.sealed_ids.append(item.item_id)
            continue

        try:
            sealed = envelope.seal(payload)
            replaced = store.replace_content_payload(item.item_id, sealed)
        except Exception as e:
            logger.error(
                "legacy_seal_failed",
                item_id=item.item_id,
                short_id=item.short_id,
                error=str(e),
            )
            result.failed_ids.append(item.item_id)
            continue

        if replaced:
            result.sealed_ids.append(item.item_id)
        else:
            # Deleted between listing and rewrite
            result.skipped_ids.append(item.item_id)

    logger.info(
        "legacy_seal_completed",
        sealed=len(result.sealed_ids),
        skipped=len(result.skipped_ids),
        failed=len(result.failed_ids),
        dry_run=dry_run,
    )
    return result
