"""Rate governor for outbound Zotero API requests.

The Zotero Web API allows roughly one request per second per client and may
ask clients to slow down in two ways:

- a ``Backoff: <seconds>`` header on any response, after which no request
  may be sent until the cooldown has elapsed;
- a ``429 Too Many Requests`` response with an optional ``Retry-After``.

:class:`RateGovernor` wraps the :class:`~zotloom.gateway.RequestGateway` and
is the only path by which a client instance sends requests. It holds an
``asyncio.Lock`` for the whole exchange, so concurrent callers on one
instance are admitted one at a time, each waiting out the active cooldown
and the minimum interval before its request is sent.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime as dt
from email.utils import parsedate_to_datetime
from http import HTTPStatus

import httpx
import tenacity
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt

from .constants import (
    BACKOFF_HEADER,
    DEFAULT_RETRY_AFTER,
    MIN_REQUEST_INTERVAL,
    RETRY_AFTER_HEADER,
)
from .gateway import RequestGateway
from .log_config import logger

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateState(BaseModel):
    """Mutable rate bookkeeping owned by exactly one governor.

    Attributes:
        last_request_at: Clock reading when the last request was sent.
        cooldown_until: Clock reading before which no request may be sent.
    """

    last_request_at: float | None = None
    cooldown_until: float = 0.0


def parse_backoff(value: str | None) -> float | None:
    """Parses a ``Backoff`` header value (whole or fractional seconds)."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        logger.warning(f"Ignoring unparseable Backoff header: {value!r}")
        return None
    return max(0.0, seconds)


def parse_retry_after(value: str | None) -> float | None:
    """Parses a ``Retry-After`` header given as seconds or as an HTTP date.

    Returns:
        float | None: Seconds to wait, or None if absent or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        retry_dt_obj = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.warning(f"Could not parse Retry-After header: {value!r}")
        return None
    if retry_dt_obj.tzinfo is None or retry_dt_obj.tzinfo.utcoffset(retry_dt_obj) is None:
        retry_dt_obj = retry_dt_obj.replace(tzinfo=UTC)
    delta = retry_dt_obj - dt.now(UTC)
    return max(0.0, delta.total_seconds())


def _is_throttled(response: httpx.Response) -> bool:
    return response.status_code == HTTPStatus.TOO_MANY_REQUESTS


def _last_response(retry_state: tenacity.RetryCallState) -> httpx.Response:
    # The retry is the final attempt; its response is returned whatever it is.
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


class RateGovernor:
    """Serializes requests against a minimum interval and server cooldowns.

    Args:
        gateway: The gateway that performs single HTTP exchanges.
        min_interval: Minimum seconds between two sent requests.
        default_retry_after: Seconds to wait after a 429 without Retry-After.
        clock: Monotonic clock returning seconds.
        sleep: Coroutine function suspending the caller for N seconds.
    """

    THROTTLE_ATTEMPTS = 2
    """The original attempt plus exactly one retry after a 429."""

    def __init__(
        self,
        gateway: RequestGateway,
        *,
        min_interval: float = MIN_REQUEST_INTERVAL,
        default_retry_after: float = DEFAULT_RETRY_AFTER,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self._gateway = gateway
        self._min_interval = min_interval
        self._default_retry_after = default_retry_after
        self._clock = clock
        self._sleep = sleep
        self._state = RateState()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> RateState:
        return self._state

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Sends a request once the rate rules allow it.

        A 429 response is retried exactly once after the server's
        ``Retry-After`` delay; the retry's response is returned as-is, so a
        second 429 reaches the caller.

        Raises:
            httpx.TransportError: Propagated unmodified from the gateway.
        """
        async with self._lock:
            await self._wait_for_turn()
            retrying = AsyncRetrying(
                stop=stop_after_attempt(self.THROTTLE_ATTEMPTS),
                wait=self._throttle_wait,
                retry=retry_if_result(_is_throttled),
                retry_error_callback=_last_response,
                before_sleep=self._log_throttled,
                sleep=self._sleep,
            )
            return await retrying(self._send_once, request)

    async def _wait_for_turn(self) -> None:
        now = self._clock()
        if now < self._state.cooldown_until:
            delay = self._state.cooldown_until - now
            logger.warning(f"Server requested backoff; waiting {delay:.2f}s.")
            await self._sleep(delay)

        if self._state.last_request_at is not None:
            elapsed = self._clock() - self._state.last_request_at
            if elapsed < self._min_interval:
                delay = self._min_interval - elapsed
                logger.trace(f"Spacing requests; waiting {delay:.3f}s.")
                await self._sleep(delay)

    async def _send_once(self, request: httpx.Request) -> httpx.Response:
        self._state.last_request_at = self._clock()
        response = await self._gateway.send(request)

        backoff = parse_backoff(response.headers.get(BACKOFF_HEADER))
        if backoff is not None:
            self._state.cooldown_until = self._clock() + backoff
            logger.info(f"Backoff of {backoff:.0f}s requested by server.")
        return response

    def _throttle_wait(self, retry_state: tenacity.RetryCallState) -> float:
        assert retry_state.outcome is not None
        response: httpx.Response = retry_state.outcome.result()
        retry_after = parse_retry_after(response.headers.get(RETRY_AFTER_HEADER))
        if retry_after is None:
            retry_after = self._default_retry_after
        # The retry is still bound by the minimum interval and any cooldown.
        cooldown = self._state.cooldown_until - self._clock()
        return max(retry_after, self._min_interval, cooldown)

    def _log_throttled(self, retry_state: tenacity.RetryCallState) -> None:
        sleep_time = (
            getattr(retry_state.next_action, "sleep", 0)
            if retry_state.next_action
            else 0
        )
        logger.warning(f"Rate limited (429). Waiting {sleep_time:.2f}s before retry.")
