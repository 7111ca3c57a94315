"""
Jira Cloud REST API Client

Direct REST access to the Jira platform API v3 over AsyncSecureHTTPClient
(HTTP/2, connection pooling, SSL enforcement).

Usage:
    from rollup.collectors.jira_rest_client import get_jira_rest_client

    client = get_jira_rest_client()

    # Children of an issue, one page at a time
    page = await client.search_issues('parent = "PROJ-1"', start_at=0, max_results=100, fields=["summary"])

    # Single issue
    issue = await client.get_issue("PROJ-7", fields=["parent"])

    # Mirror a value onto the issue
    await client.set_issue_property("PROJ-1", "isurollup", {"value": 16, "label": "16 SP"})

API Documentation:
    https://developer.atlassian.com/cloud/jira/platform/rest/v3/
"""

import asyncio
import base64
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from rollup.async_http_client import AsyncSecureHTTPClient
from rollup.core import get_logger
from rollup.secure_config import SecureConfig, get_config
from rollup.utils.error_handling import log_and_continue

logger = get_logger(__name__)

RETRYABLE_SERVER_ERRORS = (500, 502, 503)
DEFAULT_RETRY_AFTER = 60  # seconds


class JiraRESTClient:
    """
    Jira REST API v3 client using direct HTTP calls.

    Features:
    - Async HTTP/2 requests with connection pooling
    - Basic authentication with account e-mail and API token
    - Retry logic for rate limiting and server errors
    - Authentication errors fail fast
    """

    API_PREFIX = "rest/api/3"

    def __init__(self, base_url: str, email: str, api_token: str):
        """
        Initialize Jira REST client.

        Args:
            base_url: Jira site URL (e.g. https://example.atlassian.net)
            email: Account e-mail used for Basic auth
            api_token: API token for the account

        Raises:
            ValueError: If any argument is empty
        """
        if not base_url or not email or not api_token:
            raise ValueError("base_url, email and api_token are required")

        self.base_url = base_url.rstrip("/")
        self.auth_header = self._build_auth_header(email, api_token)

    def _build_auth_header(self, email: str, api_token: str) -> dict[str, str]:
        """
        Build Basic Authentication header.

        Args:
            email: Account e-mail
            api_token: API token

        Returns:
            Dictionary with Authorization, Content-Type and Accept headers
        """
        credentials = f"{email}:{api_token}"
        b64_credentials = base64.b64encode(credentials.encode()).decode()
        return {
            "Authorization": f"Basic {b64_credentials}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _build_url(self, resource: str, **params: Any) -> str:
        """
        Build a REST API URL with query parameters.

        Args:
            resource: Resource path under /rest/api/3 (e.g. "search", "issue/PROJ-1")
            **params: Query parameters (None values are filtered out)

        Returns:
            Complete API URL with query string

        Example:
            _build_url("search", jql='parent = "PROJ-1"', startAt=0)
            -> "https://example.atlassian.net/rest/api/3/search?jql=parent+%3D+%22PROJ-1%22&startAt=0"
        """
        url = f"{self.base_url}/{self.API_PREFIX}/{resource}"

        filtered_params = {k: v for k, v in params.items() if v is not None}
        if filtered_params:
            url = f"{url}?{urlencode(filtered_params)}"

        return url

    @staticmethod
    def _retry_after_seconds(response: httpx.Response) -> int:
        try:
            return int(response.headers.get("Retry-After", DEFAULT_RETRY_AFTER))
        except ValueError:
            return DEFAULT_RETRY_AFTER

    async def _handle_api_call(self, method: str, url: str, max_retries: int = 3, **kwargs: Any) -> dict[str, Any]:
        """
        Execute API call with retry logic and error handling.

        Handles:
        - Rate limiting (429) honouring Retry-After
        - Server errors (500, 502, 503) with exponential backoff
        - Network errors with retry
        - Authentication errors (401, 403) fail fast

        Args:
            method: HTTP method (GET, PUT)
            url: Full API URL
            max_retries: Maximum attempts for transient errors
            **kwargs: Additional arguments for the HTTP client

        Returns:
            Parsed JSON response ({} for an empty body)

        Raises:
            httpx.HTTPStatusError: For non-retryable HTTP errors
            httpx.RequestError: For network errors after retries exhausted
            ValueError: For an HTTP method other than GET or PUT
        """
        if method.upper() not in ("GET", "PUT"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        last_error: Exception | None = None

        for attempt in range(max_retries):
            try:
                async with AsyncSecureHTTPClient(headers=self.auth_header) as client:
                    send = client.get if method.upper() == "GET" else client.put
                    response = await send(url, **kwargs)
                    response.raise_for_status()
                    if not response.content:
                        return {}
                    return response.json()  # type: ignore[no-any-return]

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code

                if status_code in (401, 403):
                    logger.error(f"Authentication failed (HTTP {status_code}): {e.response.text}")
                    raise

                if status_code == 429:
                    retry_after = self._retry_after_seconds(e.response)
                    logger.warning(f"Rate limited, retrying after {retry_after}s (attempt {attempt + 1}/{max_retries})")
                    await asyncio.sleep(retry_after)
                    last_error = e
                    continue

                if status_code in RETRYABLE_SERVER_ERRORS:
                    backoff = 2**attempt  # 1s, 2s, 4s
                    logger.warning(
                        f"Server error (HTTP {status_code}), retrying in {backoff}s (attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(backoff)
                    last_error = e
                    continue

                logger.error(f"HTTP error {status_code}: {e.response.text}")
                raise

            except httpx.RequestError as e:
                backoff = 2**attempt
                logger.warning(f"Network error, retrying in {backoff}s (attempt {attempt + 1}/{max_retries}): {e}")
                await asyncio.sleep(backoff)
                last_error = e
                continue

        if last_error:
            log_and_continue(logger, last_error, {"url": url, "max_retries": max_retries}, "Jira API call")
            raise last_error

        raise RuntimeError("Unexpected: No error but retries exhausted")

    # ==============================
    # Issue search / read APIs
    # ==============================

    async def search_issues(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 100,
        fields: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """
        Run a JQL search and return one page of issues.

        REST Endpoint: GET {site}/rest/api/3/search

        Args:
            jql: JQL query (interpolated values must already be validated)
            start_at: Index of the first result
            max_results: Page size (Jira caps this at 100)
            fields: Fields to return for each issue

        Returns:
            {"startAt": 0, "maxResults": 100, "total": 3, "issues": [{"key": "PROJ-2", "fields": {...}}]}
        """
        url = self._build_url(
            "search",
            jql=jql,
            startAt=start_at,
            maxResults=max_results,
            fields=",".join(fields) if fields else None,
        )
        return await self._handle_api_call("GET", url)

    async def get_issue(self, issue_key: str, fields: Sequence[str] | None = None) -> dict[str, Any]:
        """
        Fetch a single issue.

        REST Endpoint: GET {site}/rest/api/3/issue/{issueKey}

        Args:
            issue_key: Issue key (validated by the caller)
            fields: Fields to return

        Returns:
            Issue JSON: {"id": "10001", "key": "PROJ-7", "fields": {...}}
        """
        url = self._build_url(f"issue/{quote(issue_key)}", fields=",".join(fields) if fields else None)
        return await self._handle_api_call("GET", url)

    # ==============================
    # Issue property APIs
    # ==============================

    async def set_issue_property(self, issue_key: str, property_name: str, value: dict[str, Any]) -> dict[str, Any]:
        """
        Create or replace an issue property.

        REST Endpoint: PUT {site}/rest/api/3/issue/{issueKey}/properties/{propertyKey}

        Args:
            issue_key: Issue key (validated by the caller)
            property_name: Property key (validated by the caller)
            value: JSON value to store

        Returns:
            Parsed response body ({} when Jira answers 200/201 without content)
        """
        url = self._build_url(f"issue/{quote(issue_key)}/properties/{quote(property_name)}")
        return await self._handle_api_call("PUT", url, json=value)


def get_jira_rest_client(config: SecureConfig | None = None) -> JiraRESTClient:
    """
    Get Jira REST client with credentials from config.

    Args:
        config: Optional configuration manager (default: a fresh one loading .env)

    Returns:
        JiraRESTClient: Authenticated REST client

    Raises:
        ConfigurationError: If JIRA_BASE_URL, JIRA_EMAIL or JIRA_API_TOKEN are missing or invalid

    Example:
        client = get_jira_rest_client()
        page = await client.search_issues('parent = "PROJ-1"')
    """
    jira_config = (config or get_config()).get_jira_config()
    return JiraRESTClient(base_url=jira_config.base_url, email=jira_config.email, api_token=jira_config.api_token)
