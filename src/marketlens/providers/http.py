"""Fault-tolerant HTTP access to upstream providers.

Each logical upstream (market data, filing registry) gets its own
``ResilientFetcher`` and therefore its own circuit breaker:

- Transient failures (transport errors, 5xx, 408, 429) are retried with
  exponential backoff: the wait before retry N is ``backoff_base ** N``.
- Every transient failure also counts against the circuit breaker. After
  ``failure_threshold`` consecutive failures the breaker opens and calls fail
  fast for ``reset_timeout`` seconds, then one probe call is let through.
- Anything else (4xx, undecodable JSON) surfaces immediately.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx
import orjson
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from marketlens.core.exceptions import (
    CircuitOpenError,
    UpstreamDataInvalidError,
    UpstreamRequestError,
    UpstreamUnavailableError,
)
from marketlens.core.logging import get_logger

TRANSIENT_STATUS_CODES = frozenset({408, 429})


def is_transient_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in TRANSIENT_STATUS_CODES


class _TransientFailure(Exception):
    """One failed attempt that is worth retrying."""


# ─────────────────────────────────────────────────────────────
# Circuit breaker
# ─────────────────────────────────────────────────────────────


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    Only the event loop thread touches it and no method awaits, so no lock
    is needed.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._log = get_logger(__name__, upstream=name)
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._opened_at is None:
            return CircuitState.CLOSED
        if self._clock() - self._opened_at >= self._reset_timeout:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    @property
    def failure_count(self) -> int:
        return self._failures

    def before_call(self) -> None:
        """Raise CircuitOpenError unless a call may go out now."""
        state = self.state
        if state is CircuitState.OPEN or (
            state is CircuitState.HALF_OPEN and self._probe_in_flight
        ):
            raise CircuitOpenError(
                f"Circuit open for {self.name}, failing fast", upstream=self.name
            )
        if state is CircuitState.HALF_OPEN:
            self._probe_in_flight = True

    def record_success(self) -> None:
        if self._opened_at is not None:
            self._log.info("Circuit closed")
        self._failures = 0
        self._opened_at = None
        self._probe_in_flight = False

    def record_failure(self) -> None:
        if self._probe_in_flight:
            self._probe_in_flight = False
            self._opened_at = self._clock()
            self._log.warning("Circuit probe failed, reopening")
            return
        self._failures += 1
        if self._failures >= self._failure_threshold and self._opened_at is None:
            self._opened_at = self._clock()
            self._log.warning(
                "Circuit opened",
                failures=self._failures,
                reset_timeout=self._reset_timeout,
            )

    def release(self) -> None:
        """Forget an in-flight probe that ended without an outcome (e.g. cancelled)."""
        self._probe_in_flight = False


# ─────────────────────────────────────────────────────────────
# Rate limiting
# ─────────────────────────────────────────────────────────────


class RateLimiter:
    """Sliding-window rate limiter (N requests per second)."""

    def __init__(self, calls_per_second: int = 10) -> None:
        self._max_calls = calls_per_second
        self._calls: list[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            loop = asyncio.get_running_loop()
            now = loop.time()
            self._calls = [t for t in self._calls if t > now - 1.0]
            if len(self._calls) >= self._max_calls:
                sleep_time = 1.0 - (now - self._calls[0]) + 0.05
                if sleep_time > 0:
                    await asyncio.sleep(sleep_time)
                now = loop.time()
                self._calls = [t for t in self._calls if t > now - 1.0]
            self._calls.append(now)


# ─────────────────────────────────────────────────────────────
# Fetcher
# ─────────────────────────────────────────────────────────────


class ResilientFetcher:
    """HTTP GET with retry-with-backoff and circuit breaking for one upstream.

    Usage:
        fetcher = ResilientFetcher("sec_edgar", headers={"User-Agent": "..."})
        data = await fetcher.fetch_json("https://data.sec.gov/submissions/CIK0000320193.json")
        await fetcher.close()

    Cancelling the calling task aborts the in-flight request or the backoff
    sleep; no further attempts are made.
    """

    def __init__(
        self,
        name: str,
        headers: dict[str, str] | None = None,
        *,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        backoff_base: float = 2.0,
        breaker: CircuitBreaker | None = None,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.name = name
        self._log = get_logger(__name__, upstream=name)
        self._headers = headers or {}
        self._timeout = timeout
        self._retry_attempts = retry_attempts
        self._backoff_base = backoff_base
        self.breaker = breaker or CircuitBreaker(name)
        self._rate_limiter = rate_limiter
        self._transport = transport
        self._sleep = sleep
        self._http_client: httpx.AsyncClient | None = None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=self._headers,
                transport=self._transport,
            )
        return self._http_client

    async def fetch(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET ``url`` under the retry and circuit-breaker policies.

        Raises:
            CircuitOpenError: the breaker is open; nothing was sent
            UpstreamUnavailableError: transient failures outlasted every retry
            UpstreamRequestError: non-transient error status (e.g. 404)
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts + 1),
            wait=wait_exponential(multiplier=self._backoff_base, exp_base=self._backoff_base),
            retry=retry_if_exception_type(_TransientFailure),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(self._attempt, url, params)
        except _TransientFailure as e:
            raise UpstreamUnavailableError(
                f"{self.name} unavailable after {self._retry_attempts + 1} attempts: {e}",
                upstream=self.name,
            ) from e

    async def fetch_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        resp = await self.fetch(url, params=params)
        try:
            return orjson.loads(resp.content)
        except orjson.JSONDecodeError as e:
            raise UpstreamDataInvalidError(
                f"{self.name} returned invalid JSON for {url}", upstream=self.name
            ) from e

    async def fetch_text(self, url: str, params: dict[str, Any] | None = None) -> str:
        resp = await self.fetch(url, params=params)
        return resp.text

    async def _attempt(self, url: str, params: dict[str, Any] | None) -> httpx.Response:
        self.breaker.before_call()
        try:
            if self._rate_limiter is not None:
                await self._rate_limiter.acquire()
            resp = await self._get_http_client().get(url, params=params)
        except httpx.TransportError as e:
            self.breaker.record_failure()
            raise _TransientFailure(f"{type(e).__name__}: {e}") from e
        except BaseException:
            self.breaker.release()
            raise

        if is_transient_status(resp.status_code):
            self.breaker.record_failure()
            raise _TransientFailure(f"HTTP {resp.status_code} from {url}")

        self.breaker.record_success()
        if resp.status_code >= 400:
            raise UpstreamRequestError(
                f"{self.name} rejected request with HTTP {resp.status_code}: {url}",
                upstream=self.name,
                status_code=resp.status_code,
            )
        return resp

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self._log.warning(
            "Upstream call failed, retrying",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error),
        )

    async def close(self) -> None:
        """Clean up resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        self._log.debug("ResilientFetcher closed")
