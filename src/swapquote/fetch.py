"""Sequential fetch with failover across redundant servers.

Servers are tried one at a time, never raced, so stateful endpoints such
as order creation do not see duplicate requests.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from swapquote.errors import AllServersUnreachable, FetchTimeout

logger = logging.getLogger(__name__)


def join_url(server: str, path: str) -> str:
    """Join a server base URL and a relative path."""
    if not path:
        return server
    return f"{server.rstrip('/')}/{path.lstrip('/')}"


class WaterfallFetcher:
    """Fetch a path from the first server that answers.

    A non-2xx answer is still an answer: idempotent requests move on to the
    next server but fall back to that answer if nobody does better, and
    non-idempotent requests return it straight away. Only when every
    server fails with a request error (connect, read, decode, redirect) is
    ``AllServersUnreachable`` raised.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        request_timeout: float = 30.0,
        default_timeout: Optional[float] = 60.0,
    ):
        """Initialize fetcher.

        Args:
            client: Shared HTTP client (created on demand if omitted)
            request_timeout: Timeout for a single server request (seconds)
            default_timeout: Overall deadline for one fetch (None = no deadline)
        """
        self._client = client
        self._owns_client = client is None
        self.request_timeout = request_timeout
        self.default_timeout = default_timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.request_timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        servers: list[str],
        path: str,
        *,
        method: str = "GET",
        params: Optional[dict] = None,
        json: Any = None,
        headers: Optional[dict] = None,
        idempotent: bool = True,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Issue a request against each server until one answers.

        Args:
            servers: Candidate base URLs, in priority order
            path: Path relative to each server
            method: HTTP method
            params: Query parameters
            json: JSON body
            headers: Request headers
            idempotent: Whether a non-2xx answer may be retried elsewhere
            timeout: Overall deadline in seconds (defaults to the fetcher's)

        Returns:
            The first successful response, else the last HTTP response received

        Raises:
            AllServersUnreachable: Every server failed with a request error
            FetchTimeout: The overall deadline passed
        """
        if not servers:
            raise ValueError("fetch requires at least one server")

        deadline = timeout if timeout is not None else self.default_timeout
        attempt = self._fetch_in_order(
            servers, path, method, params, json, headers, idempotent
        )
        if deadline is None:
            return await attempt

        try:
            return await asyncio.wait_for(attempt, timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"Fetch of {path} timed out after {deadline}s")
            raise FetchTimeout(f"No server answered {path} within {deadline}s")

    async def _fetch_in_order(
        self,
        servers: list[str],
        path: str,
        method: str,
        params: Optional[dict],
        json: Any,
        headers: Optional[dict],
        idempotent: bool,
    ) -> httpx.Response:
        errors: list[str] = []
        last_response: Optional[httpx.Response] = None

        for server in servers:
            url = join_url(server, path)
            try:
                response = await self.client.request(
                    method, url, params=params, json=json, headers=headers
                )
            except httpx.RequestError as e:
                logger.warning(f"Server {server} unreachable for {path}: {type(e).__name__}: {e}")
                errors.append(f"{server}: {type(e).__name__}: {e}")
                continue

            if response.is_success or not idempotent:
                return response

            logger.warning(f"Server {server} returned {response.status_code} for {path}")
            last_response = response

        if last_response is not None:
            return last_response

        raise AllServersUnreachable(
            f"All {len(servers)} server(s) unreachable for {path}", errors=errors
        )
