"""Request/response logging stages enabled by ``debug=True``.

The stages sit next to the send step, so they log each attempt as it is
sent and each raw outcome before plugins or the retry stage see it.  The
log level follows the response status: 2xx at INFO, 3xx at WARNING,
>= 400 at ERROR, and DEBUG when there is no status at all.

When a ``log_handler(level, payload)`` callable is configured it receives
the structured payload instead of the :mod:`logging` record.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from csdelivery.context import RequestContext

logger = logging.getLogger(__name__)

LogHandler = Callable[[str, dict[str, Any]], None]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def level_for_status(status: int) -> str:
    """Map an HTTP status to a log level name."""
    if 200 <= status < 300:
        return "info"
    if 300 <= status < 400:
        return "warning"
    if status >= 400:
        return "error"
    return "debug"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DebugLogger:
    """Logging handlers for the request and response sides of the chain."""

    def __init__(self, log_handler: Optional[LogHandler] = None) -> None:
        self._log_handler = log_handler

    def emit(self, level: str, payload: dict[str, Any]) -> None:
        if self._log_handler is not None:
            self._log_handler(level, payload)
            return
        logger.log(_LEVELS.get(level, logging.DEBUG), "%s", payload)

    async def on_request(self, ctx: RequestContext) -> RequestContext:
        self.emit(
            "info",
            {
                "type": "request",
                "method": ctx.method.upper(),
                "url": ctx.url,
                "headers": dict(ctx.headers),
                "params": dict(ctx.params),
                "attempt": ctx.attempt,
                "timestamp": _now(),
            },
        )
        return ctx

    async def on_success(self, ctx: RequestContext, response: httpx.Response) -> httpx.Response:
        self.emit(
            level_for_status(response.status_code),
            {
                "type": "response",
                "status": response.status_code,
                "status_text": response.reason_phrase,
                "url": ctx.url,
                "method": ctx.method.upper(),
                "headers": dict(response.headers),
                "timestamp": _now(),
            },
        )
        return response

    async def on_error(self, ctx: RequestContext, error: Exception) -> httpx.Response:
        status = getattr(error, "status_code", None) or 0
        self.emit(
            level_for_status(status),
            {
                "type": "response_error",
                "status": status,
                "url": ctx.url,
                "method": ctx.method.upper(),
                "error": str(error),
                "timestamp": _now(),
            },
        )
        raise error
