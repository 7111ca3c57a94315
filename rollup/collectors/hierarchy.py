"""
Hierarchy Walker

Walks an issue tree through a TreeQuerySource:
    - descendants(): depth-first collection of every descendant up to max_depth
    - ancestors(): upward walk from a leaf, closest parent first

Both walks are cycle-safe. Page failures stop paging for that one parent and
the walk continues with whatever was collected (partial results are preferred
over no result).

Usage:
    from rollup.collectors.hierarchy import HierarchyWalker

    walker = HierarchyWalker(source)
    records = await walker.descendants("PROJ-1", max_depth=3, points_field="story_points")
    parents = await walker.ancestors("PROJ-7", max_depth=3)
"""

from rollup.collectors.base import TreeQueryError, TreeQuerySource
from rollup.core import get_logger
from rollup.domain.constants import hierarchy_limits
from rollup.domain.records import Record
from rollup.utils.error_handling import log_and_continue

logger = get_logger(__name__)

BASE_FIELDS = ("summary", "status", "issuetype", "parent")


def child_field_names(points_field: str | None = None) -> list[str]:
    """Fields requested for every child: the base fields plus the points field"""
    return [*BASE_FIELDS, points_field or hierarchy_limits.DEFAULT_POINTS_FIELD]


class HierarchyWalker:
    """
    Traverses parent/child links of a tree-query source.

    Attributes:
        source: Tree-query source answering children/parent lookups
        page_size: Children requested per page (default: 100)
    """

    def __init__(self, source: TreeQuerySource, page_size: int = hierarchy_limits.PAGE_SIZE):
        self.source = source
        self.page_size = page_size

    async def descendants(
        self,
        root_key: str,
        max_depth: int = hierarchy_limits.DEFAULT_MAX_DEPTH,
        points_field: str | None = None,
    ) -> list[Record]:
        """
        Collect all descendants of root_key, depth-first.

        Depth 1 is the root's direct children. Each key is fetched and emitted
        at most once per call, so cycles and diamonds in the source terminate.

        Args:
            root_key: Issue whose subtree is collected (never included itself)
            max_depth: Deepest level to include
            points_field: Points field to request with each child

        Returns:
            Descendant records in depth-first order
        """
        field_names = child_field_names(points_field)
        visited = {root_key}
        collected: list[Record] = []

        await self._collect(root_key, 1, max_depth, field_names, visited, collected)

        logger.debug(
            f"Collected {len(collected)} descendants of {root_key}",
            extra={"issue_key": root_key, "max_depth": max_depth},
        )
        return collected

    async def _collect(
        self,
        parent_key: str,
        depth: int,
        max_depth: int,
        field_names: list[str],
        visited: set[str],
        collected: list[Record],
    ) -> None:
        if depth > max_depth:
            return

        for child in await self.fetch_all_children(parent_key, field_names):
            if child.key in visited:
                continue
            visited.add(child.key)
            collected.append(child)
            await self._collect(child.key, depth + 1, max_depth, field_names, visited, collected)

    async def fetch_all_children(self, parent_key: str, field_names: list[str]) -> list[Record]:
        """
        Page through a parent's direct children.

        Paging stops when the reported total is reached, a page comes back
        empty, or a page fetch fails. A failure is logged and whatever was
        fetched before it is returned.

        Args:
            parent_key: Parent issue key
            field_names: Fields to request

        Returns:
            Direct children (possibly partial)
        """
        children: list[Record] = []
        start_at = 0

        while True:
            try:
                page = await self.source.fetch_children_page(parent_key, field_names, start_at, self.page_size)
            except TreeQueryError as e:
                log_and_continue(
                    logger,
                    e,
                    context={"parent_key": parent_key, "start_at": start_at},
                    error_type="Child page fetch",
                )
                break

            if not page.records:
                break

            children.extend(page.records)
            start_at += len(page.records)

            if start_at >= page.total:
                break

        return children

    async def ancestors(self, leaf_key: str, max_depth: int = hierarchy_limits.DEFAULT_MAX_DEPTH) -> list[str]:
        """
        Walk upward from leaf_key, closest parent first.

        Stops when an issue has no parent, after max_depth steps, or when a
        parent key repeats.

        Args:
            leaf_key: Issue to start from (not included)
            max_depth: Maximum number of levels to climb

        Returns:
            Ancestor keys, nearest first
        """
        seen = {leaf_key}
        chain: list[str] = []
        current = leaf_key

        for _ in range(max_depth):
            parent_key = await self.source.fetch_parent_key(current)
            if parent_key is None or parent_key in seen:
                break
            seen.add(parent_key)
            chain.append(parent_key)
            current = parent_key

        return chain
