#!/usr/bin/env python3
"""
Application Constants

Centralized constants for hierarchy traversal, debouncing and storage layout.
Provides immutable configuration values used across the walker, coordinator and stores.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class HierarchyLimits:
    """
    Hierarchy traversal constants.

    Attributes:
        PAGE_SIZE: Children requested per search page (Jira search max is 100)
        DEFAULT_MAX_DEPTH: Levels walked when no depth is configured (parent -> child -> grandchild)
        MIN_DEPTH: Smallest configurable depth
        MAX_DEPTH: Largest configurable depth
        DEFAULT_POINTS_FIELD: Field summed when no points field is configured

    Example:
        >>> limits = hierarchy_limits
        >>> print(limits.DEFAULT_MAX_DEPTH)
        3
    """

    PAGE_SIZE: int = 100
    """Children requested per search page"""

    DEFAULT_MAX_DEPTH: int = 3
    """Levels walked when no depth is configured"""

    MIN_DEPTH: int = 1
    """Smallest configurable depth"""

    MAX_DEPTH: int = 5
    """Largest configurable depth"""

    DEFAULT_POINTS_FIELD: str = "story_points"
    """Field summed when no points field is configured"""


@dataclass(frozen=True)
class DebounceConfig:
    """
    Recomputation debounce constants.

    Attributes:
        WINDOW_MS: Repeated requests for the same key inside this window are skipped (5 seconds)

    Example:
        >>> print(debounce_config.WINDOW_MS)
        5000
    """

    WINDOW_MS: int = 5000
    """Repeated requests for the same key inside this window are skipped"""


@dataclass(frozen=True)
class StorageLayout:
    """
    Key-value store layout.

    Attributes:
        METRICS_PREFIX: Prefix for stored MetricResult records
        LOCK_PREFIX: Prefix for debounce lock timestamps
        FIELD_CONFIG_KEY: Key holding the admin field configuration
        ISSUE_PROPERTY: Issue property name the metric is mirrored to

    Example:
        >>> print(storage_layout.METRICS_PREFIX + "PROJ-1")
        metrics-PROJ-1
    """

    METRICS_PREFIX: str = "metrics-"
    """Prefix for stored MetricResult records"""

    LOCK_PREFIX: str = "recompute-lock-"
    """Prefix for debounce lock timestamps"""

    FIELD_CONFIG_KEY: str = "global-field-config"
    """Key holding the admin field configuration"""

    ISSUE_PROPERTY: str = "isurollup"
    """Issue property name the metric is mirrored to"""


# Singleton instances for easy import
hierarchy_limits = HierarchyLimits()
debounce_config = DebounceConfig()
storage_layout = StorageLayout()
