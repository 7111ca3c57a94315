"""
Security Utilities for Input Validation

Centralized validation of everything interpolated into Jira queries and
REST paths (issue keys, field names, property keys).

Package Structure:
    - validation: Base ValidationError exception
    - jql_validator: JQL query input validation (Jira)

Usage:
    from rollup.security import JQLValidator, ValidationError

    try:
        jql = JQLValidator.build_safe_jql('parent = "{issue_key}"', issue_key=user_input)
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        raise
"""

from .jql_validator import JQLValidator
from .validation import ValidationError


def safe_jql(template: str, **params) -> str:
    """Convenience wrapper for JQLValidator.build_safe_jql()"""
    return JQLValidator.build_safe_jql(template, **params)


__all__ = [
    "ValidationError",
    "JQLValidator",
    "safe_jql",
]
