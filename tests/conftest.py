"""
Pytest configuration and shared fixtures

Provides record builders, an in-memory tree source and stores shared by the
formula, collector, coordinator and service tests.
"""

from collections.abc import Sequence
from datetime import UTC, datetime

import pytest

from rollup.collectors.base import ChildPage, TreeQueryError
from rollup.collectors.hierarchy import HierarchyWalker
from rollup.domain.records import Record
from rollup.storage.memory_store import MemoryStore


def make_record(
    key: str,
    points: float | None = None,
    status_category: str = "new",
    status_name: str = "To Do",
    parent_key: str | None = None,
    points_field: str = "story_points",
) -> Record:
    """Build a Record the way the Jira transformer would"""
    fields = {} if points is None else {points_field: points}
    return Record(
        key=key,
        id=key.split("-")[-1],
        status_category=status_category,
        status_name=status_name,
        summary=f"Issue {key}",
        issue_type="Story",
        parent_key=parent_key,
        custom_fields=fields,
    )


class StubTreeSource:
    """
    In-memory TreeQuerySource.

    Args:
        children: parent key -> ordered list of child records
        parents: child key -> parent key
        page_failures: parent key -> start_at offset whose page fetch raises TreeQueryError
    """

    def __init__(
        self,
        children: dict[str, list[Record]] | None = None,
        parents: dict[str, str] | None = None,
        page_failures: dict[str, int] | None = None,
    ):
        self.children = children or {}
        self.parents = parents or {}
        self.page_failures = page_failures or {}
        self.page_calls: list[tuple[str, int, int]] = []
        self.parent_calls: list[str] = []
        self.requested_fields: list[str] = []

    async def fetch_children_page(
        self,
        parent_key: str,
        field_names: Sequence[str],
        start_at: int,
        max_results: int,
    ) -> ChildPage:
        self.page_calls.append((parent_key, start_at, max_results))
        self.requested_fields = list(field_names)

        if self.page_failures.get(parent_key) == start_at:
            raise TreeQueryError(f"search failed for {parent_key}")

        kids = self.children.get(parent_key, [])
        return ChildPage(records=tuple(kids[start_at : start_at + max_results]), total=len(kids))

    async def fetch_parent_key(self, key: str) -> str | None:
        self.parent_calls.append(key)
        return self.parents.get(key)


# ===== Record Fixtures =====


@pytest.fixture
def record_factory():
    """Provide the make_record builder"""
    return make_record


@pytest.fixture
def sample_records():
    """Three children: 5 and 8 points done, 3 points in progress"""
    return [
        make_record("PROJ-2", 5, "done", "Done", parent_key="PROJ-1"),
        make_record("PROJ-3", 8, "done", "Done", parent_key="PROJ-1"),
        make_record("PROJ-4", 3, "indeterminate", "In Progress", parent_key="PROJ-1"),
    ]


@pytest.fixture
def sample_timestamp():
    """Provide a consistent timestamp for testing"""
    return datetime(2026, 2, 7, 12, 0, 0, tzinfo=UTC)


# ===== Collaborator Fixtures =====


@pytest.fixture
def stub_source_class():
    """Provide the StubTreeSource class for tests that build their own trees"""
    return StubTreeSource


@pytest.fixture
def tree_source(sample_records):
    """PROJ-1 with the three sample children; PROJ-4 reports PROJ-1 as parent"""
    return StubTreeSource(
        children={"PROJ-1": sample_records},
        parents={"PROJ-2": "PROJ-1", "PROJ-3": "PROJ-1", "PROJ-4": "PROJ-1"},
    )


@pytest.fixture
def walker(tree_source):
    """HierarchyWalker over the sample tree"""
    return HierarchyWalker(tree_source)


@pytest.fixture
def memory_store():
    """Empty in-memory key-value store"""
    return MemoryStore()
