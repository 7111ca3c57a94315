"""
Collectors - read the issue hierarchy from the tracker

This package contains:
    - base: TreeQuerySource / PropertyMirror protocols, ChildPage, TreeQueryError
    - hierarchy: HierarchyWalker (descendants and ancestors)
    - jira_rest_client: Jira REST API v3 client
    - jira_transformers: Issue JSON -> Record conversion
    - jira_source: Jira-backed tree source and property mirror
"""

from .base import ChildPage, PropertyMirror, TreeQueryError, TreeQuerySource
from .hierarchy import HierarchyWalker

__all__ = [
    "ChildPage",
    "HierarchyWalker",
    "PropertyMirror",
    "TreeQueryError",
    "TreeQuerySource",
]
