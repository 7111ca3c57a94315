"""
Record domain model - one issue in a parent/child hierarchy

The tracker returns an open-ended field bag per issue. Only a handful of fields
matter here, so a Record keeps them as fixed attributes; the remaining custom
fields are held privately and read through points() alone.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

DONE_CATEGORY = "done"


@dataclass(frozen=True)
class Record:
    """
    Represents a descendant issue read from the tree-query source.

    Attributes:
        key: Issue key (e.g. "PROJ-42")
        id: Tracker-internal id (may be empty for stubs)
        status_category: Coarse status category key ("done", "indeterminate", "new", ...)
        status_name: Workflow status name (e.g. "Blocked", "In Progress")
        summary: Issue summary
        issue_type: Issue type name (e.g. "Story")
        parent_key: Key of the single parent, if any
        custom_fields: Remaining raw fields; only read through points()

    Example:
        record = Record(
            key="PROJ-2",
            status_category="done",
            status_name="Done",
            custom_fields={"story_points": 5},
        )
        record.is_done          # True
        record.points("story_points")  # 5.0
    """

    key: str
    id: str = ""
    status_category: str = ""
    status_name: str = ""
    summary: str = ""
    issue_type: str = ""
    parent_key: str | None = None
    custom_fields: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("Record key cannot be empty")
        # Freeze the field bag so records stay immutable snapshots
        object.__setattr__(self, "custom_fields", MappingProxyType(dict(self.custom_fields)))

    @property
    def is_done(self) -> bool:
        """True when the status category is 'done'"""
        return self.status_category == DONE_CATEGORY

    @property
    def is_blocked(self) -> bool:
        """True when the workflow status is named 'blocked' (any case)"""
        return self.status_name.lower() == "blocked"

    def points(self, field_name: str) -> float:
        """
        Read the configurable points field.

        Args:
            field_name: Points field name or id (e.g. "story_points", "customfield_10016")

        Returns:
            The numeric value, or 0.0 when the field is absent, non-numeric or non-finite
        """
        value = self.custom_fields.get(field_name)
        # bool is an int subclass but never a point estimate
        if isinstance(value, bool) or not isinstance(value, int | float):
            return 0.0
        value = float(value)
        return value if math.isfinite(value) else 0.0
