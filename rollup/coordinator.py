"""
Recompute Coordinator

Reacts to "issue X changed" notifications by recomputing X and every
ancestor of X, so a parent's rollup stays current when anything below it moves.

Per target key (processed one after another):
    1. Read the recompute lock; skip the key when it was recomputed within the
       debounce window.
    2. Write a fresh lock and recompute.
    3. Recompute = collect descendants, aggregate, persist under metrics-{key},
       then mirror onto the issue property.

Failure policy:
    - Lock store unavailable: recompute anyway (no dedup) rather than go stale.
    - No descendants: the stored metric is deleted (tombstone).
    - Result persistence failure: raised from recompute(); handle_change()
      logs it and moves on to the next key.
    - Mirror failure: logged, the stored result stands.

The lock is advisory: read-then-write is not atomic, so two concurrent
notifications for one key can both recompute. Both write the same value.

Usage:
    from rollup.coordinator import RecomputeCoordinator

    coordinator = RecomputeCoordinator(walker, store, FieldConfig(), mirror=mirror)
    outcome = await coordinator.handle_change("PROJ-7")
    # {"PROJ-7": RecomputeStatus.TOMBSTONED, "PROJ-1": RecomputeStatus.RECOMPUTED}
"""

import time
from collections.abc import Callable
from enum import StrEnum

from rollup.collectors.base import PropertyMirror
from rollup.collectors.hierarchy import HierarchyWalker
from rollup.core import get_logger
from rollup.domain.config import FieldConfig
from rollup.domain.constants import debounce_config, storage_layout
from rollup.domain.metrics import MetricResult
from rollup.formulas.aggregation import compute_aggregate
from rollup.storage.base import KeyValueStore, StoreError, lock_key, metrics_key
from rollup.utils.error_handling import log_and_continue, log_and_raise

logger = get_logger(__name__)


class RecomputeStatus(StrEnum):
    """Outcome of handling one target key"""

    RECOMPUTED = "recomputed"
    TOMBSTONED = "tombstoned"
    DEBOUNCED = "debounced"
    FAILED = "failed"


class RecomputeCoordinator:
    """
    Debounced recomputation of an issue and its ancestors.

    Attributes:
        walker: Hierarchy walker over the tree-query source
        store: Key-value store for metrics and locks
        config: Field configuration threaded from the entry point
        mirror: Optional issue property mirror
        clock: Returns the current time in seconds (time.time by default)
        debounce_window_ms: Skip window for repeated requests of one key
    """

    def __init__(
        self,
        walker: HierarchyWalker,
        store: KeyValueStore,
        config: FieldConfig,
        mirror: PropertyMirror | None = None,
        clock: Callable[[], float] = time.time,
        debounce_window_ms: int = debounce_config.WINDOW_MS,
    ):
        self.walker = walker
        self.store = store
        self.config = config
        self.mirror = mirror
        self.clock = clock
        self.debounce_window_ms = debounce_window_ms

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def handle_change(self, changed_key: str) -> dict[str, RecomputeStatus]:
        """
        Recompute the changed issue and its ancestors.

        Args:
            changed_key: Key of the issue that was created, updated or deleted

        Returns:
            Outcome per target key, changed key first then ancestors nearest first
        """
        ancestors = await self.walker.ancestors(changed_key, self.config.max_depth)
        targets = [changed_key, *ancestors]
        logger.info(
            f"Change on {changed_key}: {len(targets)} key(s) to refresh",
            extra={"issue_key": changed_key, "targets": targets},
        )

        outcome: dict[str, RecomputeStatus] = {}
        for key in targets:
            try:
                outcome[key] = await self._refresh(key)
            except StoreError as e:
                log_and_continue(logger, e, context={"issue_key": key}, error_type="Recompute")
                outcome[key] = RecomputeStatus.FAILED

        return outcome

    async def _refresh(self, key: str) -> RecomputeStatus:
        if await self._recently_computed(key):
            logger.info(f"Skipping {key}: recomputed within the last {self.debounce_window_ms}ms")
            return RecomputeStatus.DEBOUNCED

        await self._write_lock(key)
        result = await self.recompute(key)
        return RecomputeStatus.TOMBSTONED if result is None else RecomputeStatus.RECOMPUTED

    async def _recently_computed(self, key: str) -> bool:
        try:
            lock = await self.store.get(lock_key(key))
        except StoreError as e:
            log_and_continue(logger, e, context={"issue_key": key}, error_type="Recompute lock read")
            return False

        last = lock.get("timestamp") if isinstance(lock, dict) else None
        if isinstance(last, bool) or not isinstance(last, int | float):
            return False
        return self._now_ms() - last < self.debounce_window_ms

    async def _write_lock(self, key: str) -> None:
        try:
            await self.store.set(lock_key(key), {"timestamp": self._now_ms()})
        except StoreError as e:
            log_and_continue(logger, e, context={"issue_key": key}, error_type="Recompute lock write")

    async def recompute(self, key: str) -> MetricResult | None:
        """
        Recompute and persist one key's metric, bypassing the debounce lock.

        Args:
            key: Parent issue key

        Returns:
            The stored MetricResult, or None when the key has no descendants
            and its metric was deleted

        Raises:
            StoreError: If the metric cannot be written or deleted
        """
        records = await self.walker.descendants(key, self.config.max_depth, self.config.points_field)

        if not records:
            try:
                await self.store.delete(metrics_key(key))
            except StoreError as e:
                log_and_raise(logger, e, context={"issue_key": key}, error_type="Metric tombstone")
            logger.info(f"{key} has no descendants, stored metric removed")
            return None

        result = compute_aggregate(records, self.config)
        payload = result.to_dict()

        try:
            await self.store.set(metrics_key(key), payload)
        except StoreError as e:
            log_and_raise(logger, e, context={"issue_key": key}, error_type="Metric persistence")

        logger.info(
            f"Recomputed {key}: {result.label}",
            extra={"issue_key": key, "child_count": len(records), "color": result.color},
        )

        await self._mirror(key, payload)
        return result

    async def _mirror(self, key: str, payload: dict) -> None:
        if self.mirror is None:
            return
        try:
            written = await self.mirror.write(key, storage_layout.ISSUE_PROPERTY, payload)
        except Exception as e:
            # Mirror is best-effort; the stored metric is authoritative
            log_and_continue(logger, e, context={"issue_key": key}, error_type="Issue property mirror")
            return
        if not written:
            logger.warning(f"Issue property mirror for {key} did not succeed", extra={"issue_key": key})
