"""Retry stage: re-dispatches failed requests with a delay.

Each logical request moves through ``Initial -> Sent -> {success, failed}``.
On failure the stage checks, in order:

1. ``retry_on_error`` is enabled,
2. fewer than ``retry_limit`` retries have been made (``retry_count`` on
   the request context),
3. ``retry_condition(error)`` is true (default: network failures,
   HTTP 429 and HTTP 5xx).

If all hold it waits the backoff delay and dispatches a replay of the
request through the whole chain again, so plugins' ``on_request`` hooks
run for every attempt.  Otherwise the error is re-raised with
``attempts`` set to the total number of attempts made.

Cancelling the calling task (for example through :func:`asyncio.wait_for`)
interrupts the delay and stops any further attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from csdelivery.context import RequestContext
from csdelivery.exceptions import ConnectionError_, DeliveryError
from csdelivery.models import RetryConfig

logger = logging.getLogger(__name__)

Dispatch = Callable[[RequestContext], Awaitable[httpx.Response]]


def default_retry_condition(error: Exception) -> bool:
    """Retry on network failures, HTTP 429 and HTTP 5xx."""
    if isinstance(error, ConnectionError_):
        return True
    status = getattr(error, "status_code", None)
    return isinstance(status, int) and (status == 429 or status >= 500)


class RetryStage:
    """Request and response handlers implementing the retry policy.

    Args:
        config: Retry options.
        dispatch: Entry point of the chain; retries are sent through it.
        sleep: Coroutine function used to wait, in seconds.  Tests inject
            a recorder here.
    """

    def __init__(
        self,
        config: RetryConfig,
        dispatch: Dispatch,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._dispatch = dispatch
        self._sleep = sleep

    def should_retry(self, ctx: RequestContext, error: Exception) -> bool:
        if not self.config.retry_on_error:
            return False
        if ctx.retry_count >= self.config.retry_limit:
            return False
        condition = self.config.retry_condition or default_retry_condition
        return bool(condition(error))

    def delay_for(self, retry_number: int, error: Exception) -> float:
        """Return the delay in milliseconds before retry number *retry_number* (1-based)."""
        if self.config.custom_backoff is not None:
            return float(self.config.custom_backoff(retry_number, error))
        if self.config.backoff_base is not None:
            return float(self.config.backoff_base * 2 ** (retry_number - 1))
        return float(self.config.retry_delay)

    async def on_request(self, ctx: RequestContext) -> RequestContext:
        # Captured before plugins run so that replays start from the caller's request.
        if ctx.origin is None:
            ctx.origin = ctx.snapshot()
        return ctx

    async def on_success(self, ctx: RequestContext, response: httpx.Response) -> httpx.Response:
        if ctx.retry_count:
            logger.debug(
                "%s %s succeeded after %d retries", ctx.method, ctx.url, ctx.retry_count
            )
        return response

    async def on_error(self, ctx: RequestContext, error: Exception) -> httpx.Response:
        if not self.should_retry(ctx, error):
            if isinstance(error, DeliveryError) and error.attempts is None:
                error.attempts = ctx.attempt
            raise error

        retry_number = ctx.retry_count + 1
        delay = self.delay_for(retry_number, error)
        logger.debug(
            "%s %s failed (%s), retrying in %.0f ms (retry %d/%d)",
            ctx.method,
            ctx.url,
            error,
            delay,
            retry_number,
            self.config.retry_limit,
        )
        if delay > 0:
            await self._sleep(delay / 1000)
        return await self._dispatch(ctx.replay())
