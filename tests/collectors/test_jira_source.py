"""
Tests for the Jira tree source and property mirror
"""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from rollup.collectors.base import TreeQueryError
from rollup.collectors.hierarchy import HierarchyWalker
from rollup.collectors.jira_source import JiraPropertyMirror, JiraTreeSource
from rollup.coordinator import RecomputeCoordinator, RecomputeStatus
from rollup.domain.config import FieldConfig
from rollup.storage.memory_store import MemoryStore


@pytest.fixture
def rest_client():
    client = Mock()
    client.search_issues = AsyncMock(
        return_value={
            "total": 1,
            "issues": [{"key": "PROJ-2", "fields": {"status": {"statusCategory": {"key": "done"}}, "story_points": 5}}],
        }
    )
    client.get_issue = AsyncMock(return_value={"key": "PROJ-7", "fields": {"parent": {"key": "PROJ-4"}}})
    client.set_issue_property = AsyncMock(return_value={})
    return client


class TestJiraTreeSource:
    """Test children/parent lookups"""

    @pytest.mark.asyncio
    async def test_children_page(self, rest_client):
        """Test that children are searched by parent, oldest first"""
        page = await JiraTreeSource(rest_client).fetch_children_page(
            "PROJ-1", ["summary", "status", "story_points"], 0, 100
        )

        assert [record.key for record in page.records] == ["PROJ-2"]
        assert page.total == 1
        rest_client.search_issues.assert_awaited_once_with(
            'parent = "PROJ-1" ORDER BY created ASC',
            start_at=0,
            max_results=100,
            fields=["summary", "status", "story_points"],
        )

    @pytest.mark.asyncio
    async def test_unsafe_parent_key_is_refused(self, rest_client):
        """Test that JQL injection through the key never reaches Jira"""
        with pytest.raises(TreeQueryError, match="Refusing child search"):
            await JiraTreeSource(rest_client).fetch_children_page('PROJ-1" OR project = HR', ["summary"], 0, 100)

        rest_client.search_issues.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsafe_field_name_is_refused(self, rest_client):
        """Test that field names are validated"""
        with pytest.raises(TreeQueryError):
            await JiraTreeSource(rest_client).fetch_children_page("PROJ-1", ["summary,key"], 0, 100)

    @pytest.mark.asyncio
    async def test_http_error_becomes_tree_query_error(self, rest_client):
        """Test that transport failures surface as TreeQueryError"""
        rest_client.search_issues = AsyncMock(side_effect=httpx.ConnectError("down"))

        with pytest.raises(TreeQueryError, match="Child search failed for PROJ-1 at 200"):
            await JiraTreeSource(rest_client).fetch_children_page("PROJ-1", ["summary"], 200, 100)

    @pytest.mark.asyncio
    async def test_unreadable_response_becomes_tree_query_error(self, rest_client):
        """Test that a transform failure surfaces as TreeQueryError"""
        with patch(
            "rollup.collectors.jira_source.IssueTransformer.transform_search_response",
            side_effect=AttributeError("'str' object has no attribute 'get'"),
        ):
            with pytest.raises(TreeQueryError, match="Unreadable child search response for PROJ-1 at 0"):
                await JiraTreeSource(rest_client).fetch_children_page("PROJ-1", ["summary"], 0, 100)

    @pytest.mark.asyncio
    async def test_malformed_entries_do_not_abort_change_handling(self, rest_client):
        """Test that junk entries in a page still let the parent be recomputed"""
        first_page = {"total": 2, "issues": [{"key": "PROJ-2", "fields": {"story_points": 5}}, "garbage"]}
        rest_client.search_issues = AsyncMock(
            side_effect=lambda jql, start_at=0, **kwargs: first_page if start_at == 0 else {"total": 2, "issues": []}
        )
        rest_client.get_issue = AsyncMock(return_value={"key": "PROJ-1", "fields": {}})
        store = MemoryStore()
        coordinator = RecomputeCoordinator(
            HierarchyWalker(JiraTreeSource(rest_client)), store, FieldConfig(max_depth=1), clock=lambda: 1_000.0
        )

        outcome = await coordinator.handle_change("PROJ-1")

        assert outcome == {"PROJ-1": RecomputeStatus.RECOMPUTED}
        assert (await store.get("metrics-PROJ-1"))["label"] == "5 SP"

    @pytest.mark.asyncio
    async def test_non_object_body_is_empty_page(self, rest_client):
        rest_client.search_issues = AsyncMock(return_value="<html>maintenance</html>")

        page = await JiraTreeSource(rest_client).fetch_children_page("PROJ-1", ["summary"], 0, 100)

        assert page.records == ()

    @pytest.mark.asyncio
    async def test_parent_key(self, rest_client):
        """Test parent lookup"""
        assert await JiraTreeSource(rest_client).fetch_parent_key("PROJ-7") == "PROJ-4"
        rest_client.get_issue.assert_awaited_once_with("PROJ-7", fields=["parent"])

    @pytest.mark.asyncio
    async def test_parent_lookup_failure_returns_none(self, rest_client):
        """Test that an unreadable issue is treated as a root"""
        rest_client.get_issue = AsyncMock(side_effect=httpx.ConnectError("down"))

        assert await JiraTreeSource(rest_client).fetch_parent_key("PROJ-7") is None

    @pytest.mark.asyncio
    async def test_invalid_key_parent_lookup_returns_none(self, rest_client):
        """Test that an invalid key is never requested"""
        assert await JiraTreeSource(rest_client).fetch_parent_key("not a key") is None
        rest_client.get_issue.assert_not_called()


class TestJiraPropertyMirror:
    """Test issue property writes"""

    @pytest.mark.asyncio
    async def test_write_success(self, rest_client):
        """Test a successful property write"""
        value = {"value": 16, "label": "16 SP"}

        assert await JiraPropertyMirror(rest_client).write("PROJ-1", "isurollup", value) is True
        rest_client.set_issue_property.assert_awaited_once_with("PROJ-1", "isurollup", value)

    @pytest.mark.asyncio
    async def test_http_failure_returns_false(self, rest_client):
        """Test that a failed write reports False"""
        rest_client.set_issue_property = AsyncMock(side_effect=httpx.ConnectError("down"))

        assert await JiraPropertyMirror(rest_client).write("PROJ-1", "isurollup", {}) is False

    @pytest.mark.asyncio
    async def test_invalid_property_key_returns_false(self, rest_client):
        """Test that path characters in the property key are refused"""
        assert await JiraPropertyMirror(rest_client).write("PROJ-1", "../secrets", {}) is False
        rest_client.set_issue_property.assert_not_called()
