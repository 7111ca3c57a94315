"""
Validation exception shared by the Jira input validators.
"""


class ValidationError(ValueError):
    """Raised when a value is unsafe to place in JQL or a REST path."""
