"""
Rollup Service

Entry-point operations used by the CLI and by any event/HTTP host:
    - save_field_config / get_field_config: admin configuration
    - get_metrics / compute_field_value: read a parent's metric
    - force_recompute: recompute one key now, ignoring the debounce lock
    - handle_issue_event: react to an issue created/updated/deleted event

Field configuration is loaded from the store once per operation and passed
explicitly to the coordinator; nothing is cached between calls.

Usage:
    from rollup.service import RollupService

    service = RollupService(store, walker, mirror=mirror)
    await service.save_field_config({"type": "undoneWork", "maxDepth": 2})
    outcome = await service.handle_issue_event({"issue": {"key": "PROJ-7"}})
"""

import json
import time
from collections.abc import Callable
from typing import Any

from rollup.collectors.base import PropertyMirror
from rollup.collectors.hierarchy import HierarchyWalker
from rollup.coordinator import RecomputeCoordinator, RecomputeStatus
from rollup.core import get_logger
from rollup.domain.config import FieldConfig
from rollup.domain.metrics import MetricResult
from rollup.secure_config import ConfigurationError
from rollup.storage.base import FIELD_CONFIG_KEY, KeyValueStore, metrics_key
from rollup.utils.error_handling import log_and_return_default

logger = get_logger(__name__)


class RollupService:
    """
    Facade over the store, the walker and the coordinator.

    Attributes:
        store: Key-value store for config, metrics and locks
        walker: Hierarchy walker over the tree-query source (None for config-only use)
        mirror: Optional issue property mirror
        clock: Current time in seconds, handed to the coordinator
    """

    def __init__(
        self,
        store: KeyValueStore,
        walker: HierarchyWalker | None = None,
        mirror: PropertyMirror | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.walker = walker
        self.mirror = mirror
        self.clock = clock

    def _coordinator(self, config: FieldConfig) -> RecomputeCoordinator:
        if self.walker is None:
            raise ConfigurationError("No issue tracker configured for recomputation")
        return RecomputeCoordinator(self.walker, self.store, config, mirror=self.mirror, clock=self.clock)

    async def save_field_config(self, payload: Any) -> dict[str, Any]:
        """
        Validate and persist the admin field configuration.

        Args:
            payload: {"type", "formula", "thresholds", "maxDepth", "storyPointsField"}

        Returns:
            {"ok": True} on success, {"ok": False, "error": message} for an invalid payload

        Raises:
            StoreError: If the configuration cannot be written
        """
        if not isinstance(payload, dict):
            return {"ok": False, "error": "Configuration must be an object"}

        try:
            config = FieldConfig.parse_payload(payload)
        except ConfigurationError as e:
            logger.warning(f"Rejected field configuration: {e}")
            return {"ok": False, "error": str(e)}

        await self.store.set(FIELD_CONFIG_KEY, config.to_dict())
        logger.info(f"Saved field configuration ({config.formula_type})", extra={"config": config.to_dict()})
        return {"ok": True}

    async def get_field_config(self) -> FieldConfig:
        """Stored field configuration, or the default when none is saved"""
        stored = await self.store.get(FIELD_CONFIG_KEY)
        return FieldConfig.from_dict(stored if isinstance(stored, dict) else None)

    async def get_metrics(self, issue_key: str) -> MetricResult | None:
        """
        Stored metric for an issue.

        Returns:
            MetricResult, or None when absent or unreadable
        """
        stored = await self.store.get(metrics_key(issue_key))
        if not isinstance(stored, dict):
            return None

        try:
            return MetricResult.from_dict(stored)
        except (KeyError, TypeError, ValueError) as e:
            return log_and_return_default(
                logger,
                e,
                context={"issue_key": issue_key},
                default_value=None,
                error_type="Stored metric decode",
            )

    async def force_recompute(self, issue_key: str | None) -> dict[str, Any]:
        """
        Recompute one issue immediately, ignoring the debounce lock.

        Args:
            issue_key: Parent issue key

        Returns:
            {"ok": True, "issueKey": key, "metrics": dict | None}
            or {"ok": False, "error": "Missing issueKey"}

        Raises:
            StoreError: If the result cannot be persisted
        """
        if not issue_key:
            return {"ok": False, "error": "Missing issueKey"}

        config = await self.get_field_config()
        result = await self._coordinator(config).recompute(issue_key)
        return {"ok": True, "issueKey": issue_key, "metrics": result.to_dict() if result else None}

    async def compute_field_value(self, issue_key: str) -> str | None:
        """
        JSON value for the issue's rollup field.

        Computes and stores the metric on first access when nothing is stored yet.

        Returns:
            JSON string of the metric, or None when the issue has no descendants
        """
        metrics = await self.get_metrics(issue_key)
        if metrics is None:
            config = await self.get_field_config()
            metrics = await self._coordinator(config).recompute(issue_key)

        return json.dumps(metrics.to_dict()) if metrics else None

    async def handle_issue_event(self, event: Any) -> dict[str, RecomputeStatus]:
        """
        Handle an issue created/updated/deleted event.

        Args:
            event: Event payload carrying {"issue": {"key": ...}}

        Returns:
            Outcome per refreshed key ({} when the event carries no issue key)
        """
        issue = event.get("issue") if isinstance(event, dict) else None
        issue_key = issue.get("key") if isinstance(issue, dict) else None
        if not isinstance(issue_key, str) or not issue_key:
            logger.warning("Ignoring issue event without an issue key")
            return {}

        config = await self.get_field_config()
        return await self._coordinator(config).handle_change(issue_key)
