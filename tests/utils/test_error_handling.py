"""
Tests for the structured error handling helpers
"""

import logging

import pytest

from rollup.core import get_logger
from rollup.utils.error_handling import log_and_continue, log_and_raise, log_and_return_default

logger = get_logger("tests.error_handling")


class TestLogAndContinue:
    """Test log_and_continue()"""

    def test_logs_warning_with_context(self, caplog):
        """Test message, level and structured extras"""
        with caplog.at_level(logging.WARNING):
            log_and_continue(logger, ValueError("bad page"), {"parent_key": "PROJ-1"}, "Child page fetch")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Child page fetch failed: bad page"
        assert record.parent_key == "PROJ-1"
        assert record.error_type == "Child page fetch"
        assert record.exception_class == "ValueError"

    def test_reserved_context_key_prefixed(self, caplog):
        """Test that a context key clashing with a LogRecord attribute does not break logging"""
        with caplog.at_level(logging.WARNING):
            log_and_continue(logger, ValueError("bad"), {"module": "jira", "name": "search"}, "Lookup")

        record = caplog.records[-1]
        assert record.ctx_module == "jira"
        assert record.ctx_name == "search"
        assert record.name == "tests.error_handling"


class TestLogAndReturnDefault:
    """Test log_and_return_default()"""

    def test_returns_default(self, caplog):
        """Test that the default value is returned and logged"""
        with caplog.at_level(logging.WARNING):
            result = log_and_return_default(logger, RecursionError("deep"), {"expression": "(("}, 0.0, "Formula evaluation")

        assert result == 0.0
        assert "Formula evaluation failed, returning default value" in caplog.text
        assert caplog.records[-1].default_value == "0.0"


class TestLogAndRaise:
    """Test log_and_raise()"""

    def test_logs_error_and_reraises(self, caplog):
        """Test that the original exception propagates after an ERROR log"""
        error = OSError("disk full")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(OSError, match="disk full"):
                try:
                    raise error
                except OSError as e:
                    log_and_raise(logger, e, {"issue_key": "PROJ-1"}, "Metric persistence")

        assert caplog.records[-1].levelno == logging.ERROR
        assert "Metric persistence failed critically" in caplog.text
