"""
Jira adapters for the hierarchy walker and the coordinator

    - JiraTreeSource: TreeQuerySource over JQL search and issue reads
    - JiraPropertyMirror: PropertyMirror writing issue properties

Every issue key, field name and property key is validated before it reaches
JQL or a URL path.

Usage:
    from rollup.collectors.jira_rest_client import get_jira_rest_client
    from rollup.collectors.jira_source import JiraPropertyMirror, JiraTreeSource

    client = get_jira_rest_client()
    walker = HierarchyWalker(JiraTreeSource(client))
    mirror = JiraPropertyMirror(client)
"""

from collections.abc import Sequence
from typing import Any

import httpx

from rollup.collectors.base import ChildPage, TreeQueryError
from rollup.collectors.jira_rest_client import JiraRESTClient
from rollup.collectors.jira_transformers import IssueTransformer
from rollup.core import get_logger
from rollup.security import JQLValidator, ValidationError
from rollup.utils.error_handling import log_and_return_default

logger = get_logger(__name__)

CHILDREN_JQL = 'parent = "{issue_key}" ORDER BY created ASC'


class JiraTreeSource:
    """
    Answers children/parent lookups from Jira.

    Attributes:
        client: Authenticated Jira REST client
    """

    def __init__(self, client: JiraRESTClient):
        self.client = client

    async def fetch_children_page(
        self,
        parent_key: str,
        field_names: Sequence[str],
        start_at: int,
        max_results: int,
    ) -> ChildPage:
        """
        Fetch one page of a parent's direct children, oldest first.

        Raises:
            TreeQueryError: If the key or a field name is unsafe, the search fails,
                or the response cannot be read
        """
        try:
            jql = JQLValidator.build_safe_jql(CHILDREN_JQL, issue_key=parent_key)
            fields = [JQLValidator.validate_field_name(name) for name in field_names]
        except ValidationError as e:
            raise TreeQueryError(f"Refusing child search for {parent_key!r}: {e}") from e

        try:
            response = await self.client.search_issues(jql, start_at=start_at, max_results=max_results, fields=fields)
        except (httpx.HTTPError, ValueError) as e:
            raise TreeQueryError(f"Child search failed for {parent_key} at {start_at}: {e}") from e

        try:
            return IssueTransformer.transform_search_response(response)
        except (AttributeError, TypeError, ValueError) as e:
            raise TreeQueryError(f"Unreadable child search response for {parent_key} at {start_at}: {e}") from e

    async def fetch_parent_key(self, key: str) -> str | None:
        """Parent key of an issue; None for roots and for issues that cannot be read"""
        try:
            issue = await self.client.get_issue(JQLValidator.validate_issue_key(key), fields=["parent"])
        except (ValidationError, httpx.HTTPError, ValueError) as e:
            return log_and_return_default(
                logger,
                e,
                context={"issue_key": key},
                default_value=None,
                error_type="Parent lookup",
            )

        return IssueTransformer.parent_key(issue)


class JiraPropertyMirror:
    """
    Writes computed metrics onto issues as issue properties.

    Attributes:
        client: Authenticated Jira REST client
    """

    def __init__(self, client: JiraRESTClient):
        self.client = client

    async def write(self, key: str, property_name: str, value: dict[str, Any]) -> bool:
        """
        Create or replace an issue property.

        Returns:
            True on success, False when validation or the request fails
        """
        try:
            issue_key = JQLValidator.validate_issue_key(key)
            property_key = JQLValidator.validate_property_key(property_name)
            await self.client.set_issue_property(issue_key, property_key, value)
        except (ValidationError, httpx.HTTPError) as e:
            return log_and_return_default(
                logger,
                e,
                context={"issue_key": key, "property": property_name},
                default_value=False,
                error_type="Issue property write",
            )

        return True
