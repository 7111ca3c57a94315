"""
Field configuration domain model

FieldConfig is built once at the entry point (from the stored admin
configuration, or the default) and passed explicitly to the walker, the
aggregation engine and the coordinator.
"""

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from rollup.domain.constants import hierarchy_limits
from rollup.secure_config import ConfigurationError


class FormulaType(StrEnum):
    """Formula types offered by the admin configuration"""

    STORY_POINT_SUM = "storyPointSum"
    STORY_POINT_AVERAGE = "storyPointAverage"
    PERCENT_COMPLETE = "percentComplete"
    UNDONE_WORK = "undoneWork"
    CHILD_COUNT = "childCount"
    BLOCKED_COUNT = "blockedCount"
    CUSTOM = "custom"


def _clamp_depth(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int | float) or not math.isfinite(raw):
        return hierarchy_limits.DEFAULT_MAX_DEPTH
    return max(hierarchy_limits.MIN_DEPTH, min(hierarchy_limits.MAX_DEPTH, int(raw)))


def _parse_thresholds(raw: Any) -> tuple[float, float] | None:
    if not isinstance(raw, list | tuple) or len(raw) != 2:
        return None
    if any(isinstance(t, bool) or not isinstance(t, int | float) or not math.isfinite(t) for t in raw):
        return None
    return (float(raw[0]), float(raw[1]))


@dataclass(frozen=True)
class FieldConfig:
    """
    Configuration of the rollup field.

    Attributes:
        formula_type: One of FormulaType; unknown strings are kept and produce an "N/A" result
        formula: DSL expression, required when formula_type is "custom"
        thresholds: Optional (t1, t2) colour boundaries; order is not significant
        max_depth: Hierarchy levels to walk (1-5, default 3)
        points_field: Field summed as story points (default "story_points")

    Example:
        config = FieldConfig.from_dict({"type": "custom", "formula": "doneCount * 2"})
        config.threshold_bounds((30, 70))  # (30, 70)
    """

    formula_type: str = FormulaType.STORY_POINT_SUM.value
    formula: str | None = None
    thresholds: tuple[float, float] | None = None
    max_depth: int = hierarchy_limits.DEFAULT_MAX_DEPTH
    points_field: str = hierarchy_limits.DEFAULT_POINTS_FIELD

    def threshold_bounds(self, defaults: tuple[float, float]) -> tuple[float, float]:
        """
        Resolve (low, high) from the configured thresholds or the given defaults.

        Thresholds are normalized here, so [20, 10] and [10, 20] are equivalent.

        Args:
            defaults: (low, high) used when no thresholds are configured

        Returns:
            (low, high) with low <= high
        """
        t1, t2 = self.thresholds if self.thresholds is not None else defaults
        return min(t1, t2), max(t1, t2)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the stored configuration keys"""
        return {
            "type": self.formula_type,
            "formula": self.formula,
            "thresholds": list(self.thresholds) if self.thresholds is not None else None,
            "maxDepth": self.max_depth,
            "storyPointsField": self.points_field,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FieldConfig":
        """
        Build a config from stored data, falling back to defaults for anything missing or malformed.

        Accepts both the stored keys (type, storyPointsField) and the aliases
        (formulaType, pointsField). Depth is clamped to 1-5 and malformed
        thresholds are dropped.

        Args:
            data: Stored configuration dict, or None

        Returns:
            FieldConfig (the default config when data is empty)
        """
        if not data:
            return cls()

        formula_type = data.get("type") or data.get("formulaType") or FormulaType.STORY_POINT_SUM.value
        formula = data.get("formula")
        points_field = data.get("storyPointsField") or data.get("pointsField") or hierarchy_limits.DEFAULT_POINTS_FIELD

        return cls(
            formula_type=str(formula_type),
            formula=formula if isinstance(formula, str) else None,
            thresholds=_parse_thresholds(data.get("thresholds")),
            max_depth=_clamp_depth(data.get("maxDepth")),
            points_field=str(points_field),
        )

    @classmethod
    def parse_payload(cls, payload: dict[str, Any]) -> "FieldConfig":
        """
        Strictly validate an admin payload before it is saved.

        Args:
            payload: Raw configuration submitted by the admin surface

        Returns:
            Validated FieldConfig

        Raises:
            ConfigurationError: If the type is unknown, a custom type has no formula,
                thresholds are not a numeric pair, or maxDepth is outside 1-5
        """
        formula_type = payload.get("type") or payload.get("formulaType") or FormulaType.STORY_POINT_SUM.value
        if not isinstance(formula_type, str) or formula_type not in {t.value for t in FormulaType}:
            raise ConfigurationError(f"Unknown formula type: {formula_type!r}")

        formula = payload.get("formula")
        if formula_type == FormulaType.CUSTOM and not (isinstance(formula, str) and formula.strip()):
            raise ConfigurationError("A custom formula type requires a non-empty formula")

        raw_thresholds = payload.get("thresholds")
        thresholds = _parse_thresholds(raw_thresholds)
        if raw_thresholds is not None and thresholds is None:
            raise ConfigurationError(f"thresholds must be a pair of numbers, got {raw_thresholds!r}")

        raw_depth = payload.get("maxDepth")
        if raw_depth is not None:
            if isinstance(raw_depth, bool) or not isinstance(raw_depth, int):
                raise ConfigurationError(f"maxDepth must be an integer, got {raw_depth!r}")
            if not hierarchy_limits.MIN_DEPTH <= raw_depth <= hierarchy_limits.MAX_DEPTH:
                raise ConfigurationError(
                    f"maxDepth must be between {hierarchy_limits.MIN_DEPTH} and {hierarchy_limits.MAX_DEPTH}, got {raw_depth}"
                )

        points_field = payload.get("storyPointsField") or payload.get("pointsField") or hierarchy_limits.DEFAULT_POINTS_FIELD
        if not isinstance(points_field, str):
            raise ConfigurationError(f"storyPointsField must be a string, got {points_field!r}")

        return cls(
            formula_type=formula_type,
            formula=formula if isinstance(formula, str) and formula else None,
            thresholds=thresholds,
            max_depth=raw_depth if raw_depth is not None else hierarchy_limits.DEFAULT_MAX_DEPTH,
            points_field=points_field,
        )
