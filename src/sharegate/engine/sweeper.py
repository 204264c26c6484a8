"""Lifecycle sweeper: retires expired and exhausted items.

The sweep reclaims resources only. Request-time denial of expired or
exhausted items is the access gate's job, so the sweep may run late, run
twice, or be skipped without affecting what consumers can resolve.

Each item is an independent unit of work: release its blob (best-effort,
time-bounded), then delete its record. One item's failure is logged and
recorded, and the sweep moves on.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from time import perf_counter
from typing import Any, Protocol

from sharegate.contracts.items import Item
from sharegate.contracts.results import SweepResult
from sharegate.core.logging import get_logger

DEFAULT_INTERVAL_SECONDS = 3600.0
DEFAULT_RELEASE_TIMEOUT_SECONDS = 30.0

logger = get_logger(__name__)


class SweepableStore(Protocol):
    """Minimal item store interface required by LifecycleSweeper."""

    def list_expired(self, now: datetime) -> list[Item]:
        """Items whose expires_at is before now."""
        ...

    def list_over_quota(self) -> list[Item]:
        """Items whose view_count has reached view_limit."""
        ...

    def delete(self, item_id: str) -> bool:
        """Delete an item. Returns True if it existed."""
        ...


class BlobReleaser(Protocol):
    """Minimal blob store interface required by LifecycleSweeper."""

    def release(self, ref: str) -> bool:
        """Delete a blob. Returns True if it existed."""
        ...


class LifecycleSweeper:
    """Deletes items whose lifecycle has ended, releasing their blobs.

    Pass 1 retires expired items, pass 2 items that spent their view quota.

    Example:
        sweeper = LifecycleSweeper(store, blob_store)
        result = sweeper.sweep()
        print(result.deleted_count, result.failed_ids)
    """

    def __init__(
        self,
        store: SweepableStore,
        blob_store: BlobReleaser | None,
        *,
        release_timeout_seconds: float = DEFAULT_RELEASE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize sweeper.

        Args:
            store: Item store to scan and delete from
            blob_store: Where blob refs are released (None if the deployment
                has no external blobs)
            release_timeout_seconds: Upper bound on one blob release
        """
        self._store = store
        self._blob_store = blob_store
        self._release_timeout = release_timeout_seconds

    def pending(self, now: datetime | None = None) -> tuple[list[Item], list[Item]]:
        """What a sweep would retire right now, without deleting anything.

        Returns:
            (expired items, over-quota items)
        """
        if now is None:
            now = datetime.now(UTC)
        expired = self._store.list_expired(now)
        expired_ids = {item.item_id for item in expired}
        over_quota = [
            item
            for item in self._store.list_over_quota()
            if item.item_id not in expired_ids
        ]
        return expired, over_quota

    def sweep(self, now: datetime | None = None) -> SweepResult:
        """Run both passes once.

        Args:
            now: Reference time for expiry (defaults to current UTC time)

        Returns:
            SweepResult with per-pass counts and failed item ids
        """
        if now is None:
            now = datetime.now(UTC)
        start_time = perf_counter()
        result = SweepResult()

        try:
            expired = self._store.list_expired(now)
        except Exception as e:
            logger.error("sweep_list_failed", sweep_pass="expired", error=str(e))
            expired = []
        for item in expired:
            if self._retire(item, "expired", result):
                result.expired_deleted += 1

        # Items pass 1 failed to delete are left for the next sweep
        handled_ids = {item.item_id for item in expired}
        try:
            over_quota = self._store.list_over_quota()
        except Exception as e:
            logger.error("sweep_list_failed", sweep_pass="over_quota", error=str(e))
            over_quota = []
        for item in over_quota:
            if item.item_id in handled_ids:
                continue
            if self._retire(item, "over_quota", result):
                result.over_quota_deleted += 1

        result.duration_seconds = perf_counter() - start_time
        logger.info(
            "sweep_completed",
            expired_deleted=result.expired_deleted,
            over_quota_deleted=result.over_quota_deleted,
            blobs_released=result.blobs_released,
            blob_failures=result.blob_failures,
            failed=len(result.failed_ids),
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result

    def _retire(self, item: Item, sweep_pass: str, result: SweepResult) -> bool:
        """Release blob then delete record. Returns True if the record was deleted."""
        if item.blob_ref is not None:
            self._release_blob(item, result)

        try:
            deleted = self._store.delete(item.item_id)
        except Exception as e:
            # Next sweep retries this item
            logger.error(
                "sweep_delete_failed",
                sweep_pass=sweep_pass,
                item_id=item.item_id,
                short_id=item.short_id,
                error=str(e),
            )
            result.failed_ids.append(item.item_id)
            return False

        if deleted:
            logger.info(
                "item_retired",
                sweep_pass=sweep_pass,
                item_id=item.item_id,
                short_id=item.short_id,
            )
        return deleted

    def _release_blob(self, item: Item, result: SweepResult) -> None:
        """Best-effort blob release. Failure never blocks the record delete."""
        if self._blob_store is None:
            return
        assert item.blob_ref is not None
        blob_store = self._blob_store
        blob_ref = item.blob_ref
        outcome: dict[str, Any] = {}

        def release() -> None:
            try:
                outcome["released"] = blob_store.release(blob_ref)
            except Exception as e:
                outcome["error"] = e

        # One daemon thread per release: a hung release never delays the next
        worker = threading.Thread(
            target=release, name=f"sharegate-release-{item.item_id}", daemon=True
        )
        worker.start()
        worker.join(self._release_timeout)

        if worker.is_alive():
            result.blob_failures += 1
            logger.warning(
                "blob_release_timed_out",
                item_id=item.item_id,
                blob_ref=blob_ref,
                timeout_seconds=self._release_timeout,
            )
        elif "error" in outcome:
            result.blob_failures += 1
            logger.warning(
                "blob_release_failed",
                item_id=item.item_id,
                blob_ref=blob_ref,
                error=str(outcome["error"]),
            )
        else:
            result.blobs_released += 1


class SweepScheduler:
    """Runs a LifecycleSweeper on a fixed interval in a daemon thread.

    Independent of request traffic. A failing sweep is logged and the
    schedule continues.

    Example:
        with SweepScheduler(sweeper, interval_seconds=3600):
            serve_forever()
    """

    def __init__(
        self,
        sweeper: LifecycleSweeper,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        run_immediately: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._sweeper = sweeper
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._runs = 0

    @property
    def runs(self) -> int:
        """Number of sweeps attempted so far."""
        return self._runs

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            raise RuntimeError("Sweep scheduler already running")
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="sharegate-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("sweep_scheduler_started", interval_seconds=self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to stop and wait for the current sweep to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("sweep_scheduler_stopped", runs=self._runs)

    def _loop(self) -> None:
        if self._run_immediately:
            self._tick()
        while not self._stop.wait(self._interval):
            self._tick()

    def _tick(self) -> None:
        self._runs += 1
        try:
            self._sweeper.sweep()
        except Exception as e:
            logger.error("sweep_failed", run=self._runs, error=str(e))

    def __enter__(self) -> SweepScheduler:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
