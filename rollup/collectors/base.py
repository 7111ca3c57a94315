"""
Collector contracts for the issue hierarchy

The walker and coordinator depend only on these protocols, so the Jira
adapters, the test stubs and any other tracker can be swapped in freely.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from rollup.domain.records import Record


class TreeQueryError(Exception):
    """Raised when a page of children cannot be fetched"""

    pass


@dataclass(frozen=True)
class ChildPage:
    """One page of a parent's direct children

    Attributes:
        records: Children on this page
        total: Total number of children the source reports for the parent
    """

    records: tuple[Record, ...] = field(default_factory=tuple)
    total: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))


@runtime_checkable
class TreeQuerySource(Protocol):
    """Answers "children of X" (paged) and "parent of X" """

    async def fetch_children_page(
        self,
        parent_key: str,
        field_names: Sequence[str],
        start_at: int,
        max_results: int,
    ) -> ChildPage:
        """Fetch one page of direct children; raises TreeQueryError on failure"""
        ...

    async def fetch_parent_key(self, key: str) -> str | None:
        """Key of the single parent, or None for a root or an unreadable issue"""
        ...


@runtime_checkable
class PropertyMirror(Protocol):
    """Mirrors a computed metric onto the issue itself for search/display"""

    async def write(self, key: str, property_name: str, value: dict[str, Any]) -> bool:
        """Write the property; returns False on failure"""
        ...
