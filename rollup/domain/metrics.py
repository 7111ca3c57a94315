"""
Metric domain models

Provides the two value types flowing through aggregation:
    - FormulaContext: Named aggregates derived from a descendant set
    - MetricResult: The colour-coded value stored per parent issue

MetricResult.to_dict() is the JSON shape read verbatim by the badge and list
views, so its field names and colour tokens must not change.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from rollup.utils.numbers import as_number

VALID_COLORS = ("green", "yellow", "red", "blue", "grey")


def utc_timestamp(moment: datetime | None = None) -> str:
    """
    Format a moment as ISO-8601 UTC with millisecond precision and a 'Z' suffix.

    Example:
        >>> utc_timestamp(datetime(2026, 2, 7, 12, 0, tzinfo=UTC))
        '2026-02-07T12:00:00.000Z'
    """
    moment = moment or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class FormulaContext:
    """
    Aggregate variables computed from a parent's descendants.

    Attributes:
        child_count: Number of descendants
        total_points: Sum of the points field over all descendants
        done_count: Descendants in the 'done' status category
        undone_count: Descendants in any other category
        remaining_points: Sum of the points field over undone descendants
        percent_complete: round(done_count / child_count * 100), 0 when there are no children

    Example:
        ctx = FormulaContext(child_count=3, total_points=16, done_count=2,
                             undone_count=1, remaining_points=3, percent_complete=67)
        ctx.variables()["totalstorypoints"]  # 16
    """

    child_count: int = 0
    total_points: float = 0
    done_count: int = 0
    undone_count: int = 0
    remaining_points: float = 0
    percent_complete: int = 0

    def variables(self) -> dict[str, float]:
        """
        Variables visible to custom formulas, keyed by lower-cased name.

        Returns:
            Mapping of lower-case variable name to value
        """
        return {
            "totalstorypoints": self.total_points,
            "donecount": self.done_count,
            "undonecount": self.undone_count,
            "childcount": self.child_count,
            "remainingpoints": self.remaining_points,
            "percentcomplete": self.percent_complete,
        }


@dataclass(frozen=True)
class MetricResult:
    """
    Computed metric for one parent issue.

    Attributes:
        value: Finite numeric result
        label: Display string for the badge (e.g. "16 SP")
        color: One of green, yellow, red, blue, grey
        formula_type: Formula type that produced the value
        updated_at: ISO-8601 UTC timestamp of the computation
    """

    value: float
    label: str
    color: str
    formula_type: str | None = None
    updated_at: str = ""

    def __post_init__(self) -> None:
        if self.color not in VALID_COLORS:
            raise ValueError(f"Invalid color: {self.color!r}. Must be one of: {', '.join(VALID_COLORS)}")
        if not math.isfinite(self.value):
            raise ValueError(f"Metric value must be finite, got {self.value}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored/mirrored JSON shape"""
        return {
            "value": as_number(self.value),
            "label": self.label,
            "color": self.color,
            "formulaType": self.formula_type,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetricResult":
        """
        Rebuild a MetricResult from its stored JSON shape.

        Raises:
            KeyError: If value, label or color is missing
            ValueError: If color is unknown or value is not finite
        """
        return cls(
            value=data["value"],
            label=data["label"],
            color=data["color"],
            formula_type=data.get("formulaType"),
            updated_at=data.get("updatedAt", ""),
        )

    def __str__(self) -> str:
        return f"MetricResult({self.formula_type}: {self.label} [{self.color}])"
