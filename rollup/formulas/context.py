"""
Formula Context Builder

Reduces a descendant set into the named aggregates that presets and custom
formulas work from.
"""

from collections.abc import Iterable

from rollup.domain.constants import hierarchy_limits
from rollup.domain.metrics import FormulaContext
from rollup.domain.records import Record
from rollup.utils.numbers import as_number, round_half_up


def build_context(records: Iterable[Record], points_field: str | None = None) -> FormulaContext:
    """
    Build a FormulaContext from descendant records.

    Pure function: no I/O, no failure mode. Missing or non-numeric point values
    count as 0.

    Args:
        records: Descendant records
        points_field: Field holding story points (default "story_points")

    Returns:
        FormulaContext with counts, point sums and percent complete

    Example:
        >>> ctx = build_context(records, "story_points")
        >>> ctx.done_count + ctx.undone_count == ctx.child_count
        True
    """
    field_name = points_field or hierarchy_limits.DEFAULT_POINTS_FIELD

    child_count = 0
    done_count = 0
    total_points = 0.0
    remaining_points = 0.0

    for record in records:
        points = record.points(field_name)
        child_count += 1
        total_points += points
        if record.is_done:
            done_count += 1
        else:
            remaining_points += points

    percent_complete = int(round_half_up(done_count / child_count * 100)) if child_count else 0

    return FormulaContext(
        child_count=child_count,
        total_points=as_number(total_points),
        done_count=done_count,
        undone_count=child_count - done_count,
        remaining_points=as_number(remaining_points),
        percent_complete=percent_complete,
    )
