"""
Domain Models - Type-safe data structures for hierarchy rollups

This package contains dataclasses representing business domain concepts:
    - records: Record (one descendant issue)
    - metrics: FormulaContext, MetricResult
    - config: FieldConfig, FormulaType
    - constants: Traversal, debounce and storage constants

Usage:
    from rollup.domain import FieldConfig, Record

    record = Record(key="PROJ-2", status_category="done", custom_fields={"story_points": 5})
    if record.is_done:
        print(f"{record.key} contributes {record.points('story_points')} points")
"""

from .config import FieldConfig, FormulaType
from .metrics import FormulaContext, MetricResult, utc_timestamp
from .records import Record

__all__ = [
    "FieldConfig",
    "FormulaType",
    "FormulaContext",
    "MetricResult",
    "Record",
    "utc_timestamp",
]
