"""
Tests for RollupService

Test Coverage:
- Saving and reading the field configuration
- Reading stored metrics
- Forced recomputation
- Field value computation on first access
- Issue event handling
"""

import json
from unittest.mock import AsyncMock

import pytest

from rollup.collectors.hierarchy import HierarchyWalker
from rollup.coordinator import RecomputeStatus
from rollup.domain.config import FieldConfig
from rollup.secure_config import ConfigurationError
from rollup.service import RollupService


@pytest.fixture
def service(memory_store, walker):
    return RollupService(memory_store, walker, clock=lambda: 1_000.0)


class TestFieldConfig:
    """Test admin configuration round trip"""

    @pytest.mark.asyncio
    async def test_default_when_nothing_saved(self, service):
        """Test that an empty store yields the default config"""
        assert await service.get_field_config() == FieldConfig()

    @pytest.mark.asyncio
    async def test_save_then_read(self, service, memory_store):
        """Test that a valid payload is stored under the config key"""
        result = await service.save_field_config(
            {"type": "undoneWork", "thresholds": [40, 10], "maxDepth": 2, "storyPointsField": "customfield_10016"}
        )

        assert result == {"ok": True}
        config = await service.get_field_config()
        assert config.formula_type == "undoneWork"
        assert config.max_depth == 2
        assert config.points_field == "customfield_10016"
        assert (await memory_store.get("global-field-config"))["type"] == "undoneWork"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "median"},
            {"type": "custom"},
            {"type": "custom", "formula": "   "},
            {"thresholds": [1]},
            {"maxDepth": 9},
        ],
    )
    async def test_invalid_payload_rejected(self, service, memory_store, payload):
        """Test that invalid payloads are reported and nothing is stored"""
        result = await service.save_field_config(payload)

        assert result["ok"] is False
        assert result["error"]
        assert await memory_store.get("global-field-config") is None

    @pytest.mark.asyncio
    async def test_non_object_payload_rejected(self, service):
        """Test that a non-dict payload is rejected"""
        assert await service.save_field_config(["storyPointSum"]) == {
            "ok": False,
            "error": "Configuration must be an object",
        }

    @pytest.mark.asyncio
    async def test_corrupt_stored_config_falls_back(self, service, memory_store):
        """Test that a stored non-object config reads as the default"""
        await memory_store.set("global-field-config", "storyPointSum")

        assert await service.get_field_config() == FieldConfig()


class TestGetMetrics:
    """Test reading stored metrics"""

    @pytest.mark.asyncio
    async def test_absent_metric(self, service):
        assert await service.get_metrics("PROJ-1") is None

    @pytest.mark.asyncio
    async def test_stored_metric(self, service, memory_store):
        """Test that a stored payload decodes into a MetricResult"""
        await memory_store.set(
            "metrics-PROJ-1",
            {"value": 16, "label": "16 SP", "color": "green", "formulaType": "storyPointSum", "updatedAt": "x"},
        )

        metric = await service.get_metrics("PROJ-1")

        assert metric.value == 16
        assert metric.label == "16 SP"
        assert metric.formula_type == "storyPointSum"

    @pytest.mark.asyncio
    async def test_undecodable_metric(self, service, memory_store):
        """Test that a stored payload with an unknown colour reads as absent"""
        await memory_store.set("metrics-PROJ-1", {"value": 16, "label": "16 SP", "color": "purple"})

        assert await service.get_metrics("PROJ-1") is None


class TestForceRecompute:
    """Test forced recomputation"""

    @pytest.mark.asyncio
    async def test_missing_key(self, service):
        assert await service.force_recompute(None) == {"ok": False, "error": "Missing issueKey"}
        assert await service.force_recompute("") == {"ok": False, "error": "Missing issueKey"}

    @pytest.mark.asyncio
    async def test_recompute_ignores_lock(self, service, memory_store):
        """Test that a fresh lock does not stop a forced recompute"""
        await memory_store.set("recompute-lock-PROJ-1", {"timestamp": 1_000_000})

        result = await service.force_recompute("PROJ-1")

        assert result["ok"] is True
        assert result["issueKey"] == "PROJ-1"
        assert result["metrics"]["label"] == "16 SP"

    @pytest.mark.asyncio
    async def test_uses_stored_config(self, service):
        """Test that the saved configuration drives the computation"""
        await service.save_field_config({"type": "percentComplete"})

        result = await service.force_recompute("PROJ-1")

        assert result["metrics"]["label"] == "67%"
        assert result["metrics"]["color"] == "yellow"

    @pytest.mark.asyncio
    async def test_leaf_returns_no_metrics(self, service):
        """Test that a key without descendants reports no metrics"""
        result = await service.force_recompute("PROJ-4")

        assert result == {"ok": True, "issueKey": "PROJ-4", "metrics": None}

    @pytest.mark.asyncio
    async def test_without_walker(self, memory_store):
        """Test that recomputation needs an issue tracker"""
        service = RollupService(memory_store)

        with pytest.raises(ConfigurationError, match="No issue tracker configured"):
            await service.force_recompute("PROJ-1")


class TestComputeFieldValue:
    """Test the issue field value"""

    @pytest.mark.asyncio
    async def test_computes_on_first_access(self, service, memory_store):
        """Test that a missing metric is computed and stored"""
        value = await service.compute_field_value("PROJ-1")

        assert json.loads(value)["value"] == 16
        assert await memory_store.get("metrics-PROJ-1") is not None

    @pytest.mark.asyncio
    async def test_returns_stored_metric(self, memory_store):
        """Test that a stored metric is served without walking the tree"""
        walker = AsyncMock()
        service = RollupService(memory_store, walker)
        await memory_store.set("metrics-PROJ-1", {"value": 2, "label": "2 items", "color": "green"})

        value = await service.compute_field_value("PROJ-1")

        assert json.loads(value)["label"] == "2 items"
        walker.descendants.assert_not_called()

    @pytest.mark.asyncio
    async def test_leaf_has_no_value(self, service):
        assert await service.compute_field_value("PROJ-4") is None


class TestHandleIssueEvent:
    """Test issue event handling"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", [{}, {"issue": {}}, {"issue": {"key": 7}}, None, "PROJ-1"])
    async def test_event_without_key(self, service, event):
        assert await service.handle_issue_event(event) == {}

    @pytest.mark.asyncio
    async def test_event_refreshes_ancestors(self, service, memory_store):
        """Test that an event on a child refreshes the parent"""
        outcome = await service.handle_issue_event({"issue": {"key": "PROJ-2"}})

        assert outcome == {"PROJ-2": RecomputeStatus.TOMBSTONED, "PROJ-1": RecomputeStatus.RECOMPUTED}
        assert (await memory_store.get("metrics-PROJ-1"))["label"] == "16 SP"

    @pytest.mark.asyncio
    async def test_event_honours_stored_depth(self, memory_store, stub_source_class):
        """Test that the configured depth limits the ancestors refreshed"""
        source = stub_source_class(parents={"PROJ-3": "PROJ-2", "PROJ-2": "PROJ-1"})
        service = RollupService(memory_store, HierarchyWalker(source), clock=lambda: 1_000.0)
        await service.save_field_config({"maxDepth": 1})

        outcome = await service.handle_issue_event({"issue": {"key": "PROJ-3"}})

        assert list(outcome) == ["PROJ-3", "PROJ-2"]
