"""
Rate-Limited Request Dispatcher

Every venue adapter sends its HTTP traffic through one Requester. The
Requester owns:
- one aiohttp ClientSession (the venue's shared transport) with a fixed timeout
- two RateLimit buckets, one for authenticated and one for unauthenticated calls

A call takes a token from the bucket matching its credential class before
the request goes out. When the bucket is empty the call waits for the next
window instead of failing, so callers see backpressure, not errors.

Transport failures (timeout, connection error, non-2xx) are raised as
TransportError and never retried here.

Usage:
    requester = Requester(
        "itbit",
        auth_limit=RateLimit(interval=1.0, quota=10),
        unauth_limit=RateLimit(interval=1.0, quota=10),
        timeout=15.0,
    )
    await requester.start()
    data = await requester.send("GET", "https://api.itbit.com/v1/markets/XBTUSD/ticker")
    await requester.close()
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from core.errors import TransportError
from core.logging import get_logger, log_api_request, log_api_response


class RateLimit:
    """
    Fixed-window token bucket.

    Allows at most `quota` acquisitions per `interval` seconds. The window
    is refilled lazily: the first acquisition after a window has elapsed
    starts a new one. Acquisition is serialized by an asyncio.Lock, so
    concurrent callers can never be admitted beyond the quota.

    Args:
        interval: Window length in seconds
        quota: Requests allowed per window (<= 0 means unlimited)
        clock: Monotonic time source (injectable for tests)
        sleep: Coroutine used to wait for the next window (injectable for tests)

    Example:
        >>> limit = RateLimit(interval=10.0, quota=100)
        >>> await limit.acquire()
    """

    def __init__(
        self,
        interval: float,
        quota: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.interval = interval
        self.quota = quota
        self._clock = clock
        self._sleep = sleep
        self._window_start: Optional[float] = None
        self._count = 0
        self._lock = asyncio.Lock()

    @property
    def unlimited(self) -> bool:
        return self.quota <= 0

    @property
    def remaining(self) -> int:
        """Tokens left in the current window (quota if the window has expired)."""
        if self._window_start is None or self._clock() - self._window_start >= self.interval:
            return self.quota
        return max(self.quota - self._count, 0)

    async def acquire(self) -> None:
        """Take one token, waiting for the next window if none is left."""
        if self.unlimited:
            return

        async with self._lock:
            while True:
                now = self._clock()
                if self._window_start is None or now - self._window_start >= self.interval:
                    self._window_start = now
                    self._count = 0

                if self._count < self.quota:
                    self._count += 1
                    return

                await self._sleep(self._window_start + self.interval - now)

    def __repr__(self) -> str:
        return f"<RateLimit(quota={self.quota}, interval={self.interval}s)>"


class Requester:
    """
    Per-venue HTTP dispatcher.

    Attributes:
        name: Venue identifier used in logs and errors
        auth_limit: Bucket for authenticated requests
        unauth_limit: Bucket for unauthenticated requests
        timeout: Total request timeout in seconds
        session: Shared aiohttp ClientSession (created in start())
    """

    def __init__(
        self,
        name: str,
        auth_limit: RateLimit,
        unauth_limit: RateLimit,
        timeout: float = 15.0
    ):
        self.name = name
        self.auth_limit = auth_limit
        self.unauth_limit = unauth_limit
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self.logger = get_logger(__name__)

    # ============================================
    # Session Management
    # ============================================

    async def start(self) -> None:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self.logger.debug(f"{self.name} requester session created")

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug(f"{self.name} requester session closed")
        self.session = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Dispatch
    # ============================================

    async def send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: bool = False
    ) -> Any:
        """
        Issue one HTTP request under the matching rate limit.

        Args:
            method: HTTP method
            url: Absolute URL
            params: Query parameters
            json: JSON request body
            headers: Extra headers
            auth: Credential class of the call (selects the bucket)

        Returns:
            Parsed JSON body (None for an empty body)

        Raises:
            RuntimeError: If start() was not called
            TransportError: On timeout, connection failure or non-2xx status
        """
        if not self.session:
            raise RuntimeError(f"{self.name} requester session not initialized. Call start() first.")

        limit = self.auth_limit if auth else self.unauth_limit
        await limit.acquire()

        log_api_request(self.name, method, url, params)
        started = time.monotonic()

        try:
            async with self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers
            ) as resp:
                elapsed = time.monotonic() - started
                log_api_response(self.name, url, resp.status, elapsed)

                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    self.logger.error(f"{self.name} HTTP {resp.status} on {method} {url}: {text}")
                    raise TransportError(
                        f"{self.name}: HTTP {resp.status} on {method} {url}: {text}",
                        exchange=self.name,
                        status=resp.status,
                        url=url
                    )

                text = await resp.text()
                if not text.strip():
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise TransportError(
                        f"{self.name}: invalid JSON body on {method} {url}",
                        exchange=self.name,
                        status=resp.status,
                        url=url
                    ) from e

        except asyncio.TimeoutError as e:
            self.logger.error(f"{self.name} timeout after {self.timeout}s on {method} {url}")
            raise TransportError(
                f"{self.name}: timeout after {self.timeout}s on {method} {url}",
                exchange=self.name,
                url=url
            ) from e

        except aiohttp.ClientError as e:
            self.logger.error(f"{self.name} request failed on {method} {url}: {e}")
            raise TransportError(
                f"{self.name}: request failed on {method} {url}: {e}",
                exchange=self.name,
                url=url
            ) from e

    def __repr__(self) -> str:
        return f"<Requester(name='{self.name}', auth={self.auth_limit}, unauth={self.unauth_limit})>"
