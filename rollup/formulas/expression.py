"""
Custom Formula Evaluator

Evaluates the small formula language admins use for custom rollup fields.

Supported syntax:
    Variables:   totalStoryPoints, doneCount, undoneCount, childCount,
                 remainingPoints, percentComplete (case-insensitive)
    Operators:   + - * / ( )
    Comparisons: > < >= <= == != (yield 1 or 0, so they compose: (cond) * 10)
    Functions:   ROUND(x), ABS(x), MIN(x, ...), MAX(x, ...), IF(cond, then, else)

evaluate() is total: whatever string it is given, it returns a finite float and
never raises. Unknown identifiers and functions contribute 0, division by zero
yields 0, a missing ')' ends the sub-expression at end of input and a stray ')'
is left unconsumed.

There is no eval() here. Parsing is recursive descent over an immutable token
tuple; every step takes a cursor index and returns (value, next_index).

Usage:
    from rollup.formulas.expression import evaluate

    evaluate("IF(percentComplete >= 60, totalStoryPoints, 0)", ctx)
"""

import math
import operator
import re
from collections.abc import Callable, Mapping

from rollup.core import get_logger
from rollup.domain.metrics import FormulaContext
from rollup.utils.error_handling import log_and_return_default
from rollup.utils.numbers import round_half_up

logger = get_logger(__name__)

EPSILON = 1e-10

Tokens = tuple[str, ...]
Step = tuple[float, int]

# Anything outside these alternatives is skipped by finditer()
TOKEN_PATTERN = re.compile(r"\s*((?:\d+\.?\d*)|(?:[a-zA-Z_]\w*)|(?:>=|<=|==|!=)|[+\-*/(),<>=!])\s*")
NUMBER_PATTERN = re.compile(r"\d+\.?\d*")

COMPARISONS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": lambda left, right: abs(left - right) < EPSILON,
    "!=": lambda left, right: abs(left - right) >= EPSILON,
}


def _if(args: list[float]) -> float:
    if args[0] > 0:
        return args[1] if len(args) > 1 else 0.0
    return args[2] if len(args) > 2 else 0.0


FUNCTIONS: dict[str, Callable[[list[float]], float]] = {
    "ROUND": lambda args: round_half_up(args[0]),
    "ABS": lambda args: abs(args[0]),
    "MIN": min,
    "MAX": max,
    "IF": _if,
}


def tokenize(expression: str) -> Tokens:
    """
    Split an expression into tokens.

    Example:
        >>> tokenize("MAX(doneCount, 1) >= 2")
        ('MAX', '(', 'doneCount', ',', '1', ')', '>=', '2')
    """
    return tuple(match.group(1) for match in TOKEN_PATTERN.finditer(expression))


def _peek(tokens: Tokens, pos: int) -> str | None:
    return tokens[pos] if pos < len(tokens) else None


def _parse_comparison(tokens: Tokens, pos: int, variables: Mapping[str, float]) -> Step:
    left, pos = _parse_add_sub(tokens, pos, variables)
    while (op := _peek(tokens, pos)) in COMPARISONS:
        right, pos = _parse_add_sub(tokens, pos + 1, variables)
        left = 1.0 if COMPARISONS[op](left, right) else 0.0
    return left, pos


def _parse_add_sub(tokens: Tokens, pos: int, variables: Mapping[str, float]) -> Step:
    left, pos = _parse_mul_div(tokens, pos, variables)
    while (op := _peek(tokens, pos)) in ("+", "-"):
        right, pos = _parse_mul_div(tokens, pos + 1, variables)
        left = left + right if op == "+" else left - right
    return left, pos


def _parse_mul_div(tokens: Tokens, pos: int, variables: Mapping[str, float]) -> Step:
    left, pos = _parse_unary(tokens, pos, variables)
    while (op := _peek(tokens, pos)) in ("*", "/"):
        right, pos = _parse_unary(tokens, pos + 1, variables)
        if op == "*":
            left = left * right
        else:
            left = left / right if right != 0 else 0.0
    return left, pos


def _parse_unary(tokens: Tokens, pos: int, variables: Mapping[str, float]) -> Step:
    if _peek(tokens, pos) == "-":
        value, pos = _parse_atom(tokens, pos + 1, variables)
        return -value, pos
    return _parse_atom(tokens, pos, variables)


def _parse_function(name: str, tokens: Tokens, pos: int, variables: Mapping[str, float]) -> Step:
    # pos points just past the opening '('
    value, pos = _parse_comparison(tokens, pos, variables)
    args = [value]
    while _peek(tokens, pos) == ",":
        value, pos = _parse_comparison(tokens, pos + 1, variables)
        args.append(value)
    if _peek(tokens, pos) == ")":
        pos += 1
    return FUNCTIONS[name](args), pos


def _parse_atom(tokens: Tokens, pos: int, variables: Mapping[str, float]) -> Step:
    token = _peek(tokens, pos)

    # End of input, or a delimiter owned by an enclosing call/group
    if token is None or token in (")", ","):
        return 0.0, pos

    if NUMBER_PATTERN.fullmatch(token):
        return float(token), pos + 1

    if token == "(":
        value, pos = _parse_comparison(tokens, pos + 1, variables)
        if _peek(tokens, pos) == ")":
            pos += 1
        return value, pos

    name = token.upper()
    if name in FUNCTIONS and _peek(tokens, pos + 1) == "(":
        return _parse_function(name, tokens, pos + 2, variables)

    lowered = token.lower()
    if lowered in variables:
        return float(variables[lowered]), pos + 1

    # Unknown identifier, function or operator: skip it
    return 0.0, pos + 1


def evaluate(expression: str, context: FormulaContext) -> float:
    """
    Evaluate a formula against a formula context.

    Args:
        expression: Formula source, e.g. "(doneCount * 100) / childCount"
        context: Aggregates the formula variables resolve to

    Returns:
        A finite float; 0.0 for empty, malformed or non-finite results

    Example:
        >>> ctx = FormulaContext(child_count=10, done_count=7)
        >>> evaluate("(doneCount * 100) / childCount", ctx)
        70.0
        >>> evaluate("10 / 0", ctx)
        0.0
    """
    if not isinstance(expression, str) or not expression.strip():
        return 0.0

    try:
        value, _ = _parse_comparison(tokenize(expression), 0, context.variables())
    except (RecursionError, ArithmeticError, ValueError) as e:
        return log_and_return_default(
            logger,
            e,
            context={"expression": expression[:200]},
            default_value=0.0,
            error_type="Formula evaluation",
        )

    if not math.isfinite(value) or value == 0:
        return 0.0
    return value
