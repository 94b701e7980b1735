"""Time-gated cache of provider tuning published by the info server."""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from swapquote.errors import SwapError
from swapquote.fetch import WaterfallFetcher
from swapquote.schemas import ExchangeInfo, parse_payload

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


class RemoteInfoCache:
    """Provider tuning with lazy refresh and hardcoded defaults.

    Owned by one provider instance. The payload and its refresh time live in
    a single tuple that is replaced whole, so readers never see a payload
    paired with the wrong timestamp. Refresh failures are logged and never
    reach the caller.
    """

    def __init__(
        self,
        fetcher: WaterfallFetcher,
        servers: list[str],
        app_id: str,
        defaults: ExchangeInfo,
        ttl_ms: int = 60_000,
        timeout: float = 5.0,
        clock: Callable[[], float] = _now_ms,
    ):
        """Initialize cache.

        Args:
            fetcher: Waterfall fetcher used for refreshes
            servers: Info server base URLs
            app_id: Application id in the exchange info path
            defaults: Tuning served until a refresh succeeds
            ttl_ms: Freshness window in milliseconds
            timeout: Deadline for a single refresh (seconds)
            clock: Current time in milliseconds
        """
        self.fetcher = fetcher
        self.servers = servers
        self.app_id = app_id
        self.defaults = defaults
        self.ttl_ms = ttl_ms
        self.timeout = timeout
        self._clock = clock
        self._snapshot: tuple[Optional[ExchangeInfo], float] = (None, 0.0)
        self._refresh_lock = asyncio.Lock()

    @property
    def payload(self) -> Optional[ExchangeInfo]:
        """Last successfully fetched tuning, if any."""
        return self._snapshot[0]

    @property
    def last_refreshed_ms(self) -> float:
        return self._snapshot[1]

    def is_stale(self, now: Optional[float] = None) -> bool:
        payload, refreshed_at = self._snapshot
        if payload is None:
            return True
        now = self._clock() if now is None else now
        return now - refreshed_at > self.ttl_ms

    async def get_tuning(self) -> ExchangeInfo:
        """Current tuning, refreshing first if stale."""
        await self.refresh_if_stale()
        payload = self._snapshot[0]
        return payload if payload is not None else self.defaults

    async def refresh_if_stale(self) -> None:
        if not self.is_stale():
            return
        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            now = self._clock()
            if self.is_stale(now):
                await self._refresh(now)

    async def _refresh(self, now: float) -> None:
        path = f"v1/exchangeInfo/{self.app_id}"
        try:
            response = await self.fetcher.fetch(self.servers, path, timeout=self.timeout)
        except (SwapError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error getting info server exchangeInfo. Using defaults... {type(e).__name__}: {e}")
            return

        if not response.is_success:
            logger.warning(
                f"Error getting info server exchangeInfo ({response.status_code}). Using defaults..."
            )
            return

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Info server returned invalid JSON. Using defaults... {e}")
            return

        parsed = parse_payload(ExchangeInfo, data, "exchangeInfo")
        if not parsed.ok:
            logger.warning(f"{parsed.error}. Using defaults...")
            return

        self._snapshot = (parsed.value, now)
        logger.debug(f"Refreshed exchange info for app '{self.app_id}'")
