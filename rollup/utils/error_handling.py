"""
Structured logging of caught errors

Three outcomes for a caught exception, each logged with the context of what
was being attempted:
    log_and_continue()        WARNING, the caller carries on (partial results)
    log_and_return_default()  WARNING, the caller returns a fallback value
    log_and_raise()           ERROR with traceback, the exception propagates

Context keys become top-level log fields (issue_key=PROJ-1 on the console,
"issue_key": "PROJ-1" in JSON lines). A key that clashes with a LogRecord
attribute is prefixed with "ctx_".
"""

import logging
from typing import Any, TypeVar

from rollup.core.logging_config import RESERVED_ATTRS

T = TypeVar("T")


def _error_extra(error: Exception, context: dict[str, Any], error_type: str) -> dict[str, Any]:
    extra = {f"ctx_{name}" if name in RESERVED_ATTRS else name: value for name, value in context.items()}
    extra["error_type"] = error_type
    extra["exception_class"] = error.__class__.__name__
    return extra


def log_and_continue(
    logger: logging.Logger,
    error: Exception,
    context: dict[str, Any],
    error_type: str = "Operation",
) -> None:
    """
    Log a recoverable failure and let the caller continue.

    Args:
        logger: Logger instance from get_logger(__name__)
        error: The caught exception
        context: What was being attempted (issue_key, start_at, ...)
        error_type: Name of the operation, used as the message prefix

    Example:
        try:
            page = await source.fetch_children_page(key, fields, start_at, PAGE_SIZE)
        except TreeQueryError as e:
            log_and_continue(logger, e, {"parent_key": key}, "Child page fetch")
            break
    """
    logger.warning(f"{error_type} failed: {error}", extra=_error_extra(error, context, error_type))


def log_and_return_default(
    logger: logging.Logger,
    error: Exception,
    context: dict[str, Any],
    default_value: T,
    error_type: str = "Operation",
) -> T:
    """
    Log a failure and hand back a fallback value.

    Returns:
        default_value

    Example:
        try:
            return _parse(tokens)
        except RecursionError as e:
            return log_and_return_default(logger, e, {"expression": expr}, 0.0, "Formula evaluation")
    """
    extra = _error_extra(error, context, error_type)
    extra["default_value"] = str(default_value)
    logger.warning(f"{error_type} failed, returning default value: {error}", extra=extra)
    return default_value


def log_and_raise(
    logger: logging.Logger,
    error: Exception,
    context: dict[str, Any],
    error_type: str = "Operation",
) -> None:
    """
    Log a failure the caller must see, then re-raise it.

    Call from inside the `except` block so the traceback is attached.

    Raises:
        The original exception

    Example:
        try:
            await store.set(metrics_key(issue_key), result.to_dict())
        except StoreError as e:
            log_and_raise(logger, e, {"issue_key": issue_key}, "Metric persistence")
    """
    logger.error(f"{error_type} failed critically: {error}", exc_info=True, extra=_error_extra(error, context, error_type))
    raise error
