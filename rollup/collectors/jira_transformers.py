"""
Jira REST API Response Transformers

Converts raw issue JSON into Record objects and search responses into ChildPage
objects, so nothing past the adapter layer touches Jira's nested field shapes.

Usage:
    from rollup.collectors.jira_transformers import IssueTransformer

    rest_response = {"total": 2, "issues": [{"key": "PROJ-2", "fields": {...}}]}
    page = IssueTransformer.transform_search_response(rest_response)
    # ChildPage(records=(Record(key="PROJ-2", ...), ...), total=2)
"""

from typing import Any

from rollup.collectors.base import ChildPage
from rollup.core import get_logger
from rollup.domain.records import Record

logger = get_logger(__name__)


def _nested(data: Any, *path: str) -> Any:
    """Follow dict keys, returning None as soon as a level is missing or not a dict"""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _text(value: Any) -> str:
    """Value if it is a string, else the empty string"""
    return value if isinstance(value, str) else ""


class IssueTransformer:
    """
    Transform issue REST responses to domain records.

    Handles:
    - Single issue JSON (GET /issue/{key}, search hits)
    - Search result pages
    - Parent key extraction
    """

    @staticmethod
    def transform_issue(issue: dict[str, Any]) -> Record:
        """
        Transform one issue JSON object into a Record.

        REST shape:
        {
            "id": "10002",
            "key": "PROJ-2",
            "fields": {
                "summary": "Login form",
                "status": {"name": "Done", "statusCategory": {"key": "done"}},
                "issuetype": {"name": "Story"},
                "parent": {"key": "PROJ-1"},
                "story_points": 5
            }
        }

        Args:
            issue: Issue JSON

        Returns:
            Record; the whole "fields" object becomes its custom field bag

        Raises:
            ValueError: If the issue is not an object or has no key
        """
        if not isinstance(issue, dict):
            raise ValueError(f"Issue must be an object, got {type(issue).__name__}")

        fields = issue.get("fields") or {}
        if not isinstance(fields, dict):
            fields = {}

        return Record(
            key=str(issue.get("key") or ""),
            id=str(issue.get("id") or ""),
            status_category=_text(_nested(fields, "status", "statusCategory", "key")),
            status_name=_text(_nested(fields, "status", "name")),
            summary=_text(fields.get("summary")),
            issue_type=_text(_nested(fields, "issuetype", "name")),
            parent_key=IssueTransformer.parent_key(issue),
            custom_fields=fields,
        )

    @staticmethod
    def parent_key(issue: dict[str, Any]) -> str | None:
        """Key of the issue's parent, or None when it has none"""
        key = _nested(issue, "fields", "parent", "key")
        return key if isinstance(key, str) and key else None

    @staticmethod
    def transform_search_response(rest_response: dict[str, Any]) -> ChildPage:
        """
        Transform a search response page into a ChildPage.

        Entries that are not objects or have no key are skipped and logged. A
        response that is not an object reads as an empty page.

        Args:
            rest_response: Search JSON ({"total": N, "issues": [...]})

        Returns:
            ChildPage with the page's records and the reported total
        """
        if not isinstance(rest_response, dict):
            logger.warning(f"Search response is not an object ({type(rest_response).__name__}), treating as empty page")
            return ChildPage(records=(), total=0)

        issues = rest_response.get("issues")
        records = []
        for issue in issues if isinstance(issues, list) else []:
            try:
                records.append(IssueTransformer.transform_issue(issue))
            except ValueError as e:
                logger.warning(f"Skipping malformed issue in search response: {e}")

        total = rest_response.get("total")
        if isinstance(total, bool) or not isinstance(total, int):
            total = len(records)

        return ChildPage(records=tuple(records), total=total)
