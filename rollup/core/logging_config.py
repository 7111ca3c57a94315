"""
Logging setup for the rollup service.

Console output is human-readable by default; file output is always one JSON
object per line. Both carry the context passed through `extra=` (issue_key,
parent_key, start_at, ...), so a recompute can be followed key by key.

Usage:
    from rollup.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Recomputing metrics", extra={"issue_key": "PROJ-1"})
"""

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Attributes every LogRecord has; anything else on a record came from `extra=`
RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def _iso_utc(created: float) -> str:
    return datetime.fromtimestamp(created, UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """
    Context fields attached to a record.

    Flattens log_with_context()'s extra_fields together with plain `extra=` keys.

    Example:
        >>> record_context(record)
        {'issue_key': 'PROJ-1', 'child_count': 3}
    """
    context = {
        name: value
        for name, value in vars(record).items()
        if name not in RESERVED_ATTRS and name != "extra_fields"
    }
    context.update(getattr(record, "extra_fields", {}))
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields merged at top level"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _iso_utc(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
            **record_context(record),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """
    Console formatter.

    Colours the level name on a terminal and appends context as key=value pairs:
        2026-02-07 12:00:00 | INFO     | rollup.coordinator | Recomputed PROJ-1: 16 SP [issue_key=PROJ-1]
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_color: bool | None = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = sys.stderr.isatty() if use_color is None else use_color

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_color:
            record.levelname = f"{self.COLORS.get(levelname, '')}{levelname}{self.RESET}"

        try:
            line = super().format(record)
        finally:
            record.levelname = levelname

        context = record_context(record)
        if context:
            pairs = " ".join(f"{name}={value}" for name, value in context.items())
            line = f"{line} [{pairs}]"
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    json_output: bool = False,
) -> None:
    """
    Configure root logging for a CLI run.

    Replaces any handlers already on the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Optional file that receives JSON lines (parent dirs are created)
        json_output: Use JSON on the console too

    Example:
        setup_logging(level="DEBUG")
        setup_logging(level="INFO", log_file=Path(".tmp/logs/rollup.log"), json_output=True)
    """
    log_level = getattr(logging, level.upper(), None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    if json_output:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            ContextFormatter(fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with __name__"""
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: Any) -> None:
    """
    Log message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **context: Context fields, merged into the JSON line and the console suffix

    Example:
        log_with_context(logger, "info", "Metric stored", issue_key="PROJ-1", value=16)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, extra={"extra_fields": context})
