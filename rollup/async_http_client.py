"""
Async HTTPS transport for the Jira adapter

One pooled httpx.AsyncClient per `async with` block. Only https:// URLs are
accepted and certificate verification cannot be turned off.

Usage:
    from rollup.async_http_client import AsyncSecureHTTPClient

    async with AsyncSecureHTTPClient(headers=auth_headers) as client:
        response = await client.get(search_url)
        response = await client.put(property_url, json=payload)
"""

from typing import Any

import httpx

from rollup.core import get_logger

logger = get_logger(__name__)


class AsyncSecureHTTPClient:
    """
    Async HTTPS client with connection pooling and HTTP/2.

    Attributes:
        headers: Headers sent with every request (per-call headers win)
        limits: Connection pool limits
        timeout: Default request timeout
        http2: Whether HTTP/2 is negotiated
    """

    DEFAULT_TIMEOUT = 30  # seconds
    DEFAULT_MAX_CONNECTIONS = 20
    DEFAULT_MAX_KEEPALIVE = 10

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        max_keepalive_connections: int = DEFAULT_MAX_KEEPALIVE,
        timeout: float = DEFAULT_TIMEOUT,
        http2: bool = True,
    ):
        self.headers = dict(headers or {})
        self.limits = httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_keepalive_connections)
        self.timeout = httpx.Timeout(timeout)
        self.http2 = http2
        self.client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AsyncSecureHTTPClient":
        self.client = httpx.AsyncClient(
            headers=self.headers,
            limits=self.limits,
            timeout=self.timeout,
            verify=True,
            http2=self.http2,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request over the pooled client.

        Args:
            method: HTTP method
            url: Absolute https:// URL
            **kwargs: Passed through to httpx.AsyncClient.request()

        Returns:
            httpx.Response (status is not checked here)

        Raises:
            RuntimeError: If used outside `async with`
            ValueError: If the URL is not https://
        """
        if self.client is None:
            raise RuntimeError("Client not initialized. Use 'async with AsyncSecureHTTPClient()' context manager")
        if not url.startswith("https://"):
            raise ValueError(f"Refusing non-HTTPS request: {url}")

        logger.debug(f"{method} {url}")
        return await self.client.request(method, url, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)
