"""
Aggregation Engine

Turns a parent's descendants into one MetricResult using either a preset
formula or a custom DSL expression, then colours the value by thresholds.

Colour rules:
    Standard (every preset except percentComplete, and custom):
        value >= high -> red, value >= low -> yellow, else green.
        Higher values are treated as worse (more points, more open work, more
        blocked items). Configured thresholds override the per-type defaults.
    percentComplete:
        100 -> green, >= 50 -> yellow, else red. Completion is the one metric
        where higher is better, so it ignores configured thresholds and always
        uses these fixed boundaries.

Usage:
    from rollup.formulas.aggregation import compute_aggregate

    result = compute_aggregate(descendants, FieldConfig(formula_type="undoneWork"))
    print(result.label, result.color)  # "3 SP left" "green"
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from rollup.core import get_logger
from rollup.domain.config import FieldConfig, FormulaType
from rollup.domain.metrics import FormulaContext, MetricResult, utc_timestamp
from rollup.domain.records import Record
from rollup.formulas.context import build_context
from rollup.formulas.expression import evaluate
from rollup.utils.numbers import as_number, format_number, round_half_up

logger = get_logger(__name__)

CUSTOM_DEFAULT_THRESHOLDS = (30.0, 70.0)


@dataclass(frozen=True)
class Preset:
    """A preset formula: how to get the value, how to label it, default (low, high) thresholds"""

    value: Callable[[FormulaContext, list[Record]], float]
    label: str
    default_thresholds: tuple[float, float]


def _average_points(ctx: FormulaContext, records: list[Record]) -> float:
    if not ctx.child_count:
        return 0
    return round_half_up(ctx.total_points / ctx.child_count, 1)


PRESETS: dict[str, Preset] = {
    FormulaType.STORY_POINT_SUM: Preset(lambda ctx, _: ctx.total_points, "{} SP", (20, 50)),
    FormulaType.STORY_POINT_AVERAGE: Preset(_average_points, "{} SP avg", (3, 8)),
    FormulaType.UNDONE_WORK: Preset(lambda ctx, _: ctx.remaining_points, "{} SP left", (10, 30)),
    FormulaType.CHILD_COUNT: Preset(lambda ctx, _: ctx.child_count, "{} items", (5, 15)),
    FormulaType.BLOCKED_COUNT: Preset(
        lambda _, records: sum(1 for record in records if record.is_blocked), "{} blocked", (1, 3)
    ),
}


def threshold_color(value: float, config: FieldConfig, defaults: tuple[float, float]) -> str:
    """
    Standard colour rule (higher is worse).

    Args:
        value: Metric value
        config: Field config (its thresholds override defaults, in either order)
        defaults: (low, high) for the formula type

    Returns:
        "red", "yellow" or "green"
    """
    low, high = config.threshold_bounds(defaults)
    if value >= high:
        return "red"
    if value >= low:
        return "yellow"
    return "green"


def percent_complete_color(percent: float) -> str:
    """Inverted colour rule for completion (higher is better), fixed boundaries"""
    if percent == 100:
        return "green"
    if percent >= 50:
        return "yellow"
    return "red"


def _custom_result(ctx: FormulaContext, config: FieldConfig) -> tuple[float, str, str]:
    if not config.formula or not config.formula.strip():
        logger.warning("Custom formula type configured without a formula")
        return 0, "Formula error", "red"

    try:
        value = round_half_up(evaluate(config.formula, ctx), 2)
    except Exception as e:
        # evaluate() is total; this only guards against a defect in it
        logger.error(f"Custom formula error: {e}", exc_info=True, extra={"formula": config.formula})
        return 0, "Formula error", "red"

    return value, format_number(value), threshold_color(value, config, CUSTOM_DEFAULT_THRESHOLDS)


def compute_aggregate(
    records: Iterable[Record],
    config: FieldConfig,
    now: datetime | None = None,
) -> MetricResult:
    """
    Compute the metric for a parent from its descendants.

    Args:
        records: Descendant records
        config: Field configuration (formula type, formula, thresholds, points field)
        now: Optional timestamp to stamp on the result (default: current UTC time)

    Returns:
        MetricResult stamped with the formula type and a fresh updated_at

    Example:
        >>> result = compute_aggregate(records, FieldConfig(formula_type="storyPointSum"))
        >>> result.label
        '16 SP'
    """
    records = list(records)
    ctx = build_context(records, config.points_field)
    formula_type = config.formula_type

    if formula_type == FormulaType.PERCENT_COMPLETE:
        value: float = ctx.percent_complete
        label = f"{value}%"
        color = percent_complete_color(value)
    elif formula_type == FormulaType.CUSTOM:
        value, label, color = _custom_result(ctx, config)
    elif formula_type in PRESETS:
        preset = PRESETS[formula_type]
        value = preset.value(ctx, records)
        label = preset.label.format(format_number(value))
        color = threshold_color(value, config, preset.default_thresholds)
    else:
        logger.warning(f"Unknown formula type: {formula_type!r}")
        value, label, color = 0, "N/A", "grey"

    return MetricResult(
        value=as_number(value),
        label=label,
        color=color,
        formula_type=formula_type,
        updated_at=utc_timestamp(now),
    )
