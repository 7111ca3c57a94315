"""
Formulas - context building, custom expression evaluation and aggregation

Usage:
    from rollup.formulas import build_context, compute_aggregate, evaluate
"""

from .aggregation import compute_aggregate
from .context import build_context
from .expression import evaluate

__all__ = ["build_context", "compute_aggregate", "evaluate"]
