"""Explicitly ordered interceptor chain around a single send step.

:class:`InterceptorChain` replaces the implicit registration-order rules
of promise-based HTTP clients with two plain lists:

* **request stages** run first, in list order, each receiving and
  returning a :class:`~csdelivery.context.RequestContext`;
* the **adapter** sends the request and returns an :class:`httpx.Response`;
* **response stages** run last, in list order.  Each has an optional
  ``on_success`` and ``on_error`` handler.  While the outcome is a
  response, ``on_success`` handlers run; once something has failed, only
  ``on_error`` handlers run, and one that returns a response turns the
  outcome back into a success.

A response with status >= 400 leaving the adapter is converted into a
typed :class:`~csdelivery.exceptions.DeliveryError` by
:func:`map_response_error`, so response stages see failed attempts as
errors, never as responses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from csdelivery.context import RequestContext, extract_response_data
from csdelivery.exceptions import (
    AuthError,
    DeliveryError,
    NotFoundError,
    RateLimitError,
    ServerError,
)

logger = logging.getLogger(__name__)

RequestHandler = Callable[[RequestContext], Awaitable[RequestContext]]
SuccessHandler = Callable[[RequestContext, httpx.Response], Awaitable[httpx.Response]]
ErrorHandler = Callable[[RequestContext, Exception], Awaitable[httpx.Response]]
Adapter = Callable[[RequestContext], Awaitable[httpx.Response]]


@dataclass(frozen=True)
class RequestStage:
    name: str
    handler: RequestHandler


@dataclass(frozen=True)
class ResponseStage:
    name: str
    on_success: Optional[SuccessHandler] = None
    on_error: Optional[ErrorHandler] = None


def map_response_error(response: httpx.Response) -> Optional[DeliveryError]:
    """Return a typed exception for an error status, or ``None`` below 400."""
    status = response.status_code
    if status < 400:
        return None

    detail = extract_response_data(response)
    if isinstance(detail, dict):
        msg = detail.get("error_message") or detail.get("message") or detail.get("error") or ""
    elif detail:
        msg = str(detail)[:200]
    else:
        msg = ""
    prefix = f"HTTP {status}"
    full_msg = f"{prefix}: {msg}" if msg else prefix

    if status in (401, 403):
        return AuthError(full_msg, status_code=status, response=response)
    if status == 404:
        return NotFoundError(full_msg, status_code=status, response=response)
    if status == 429:
        return RateLimitError(full_msg, status_code=status, response=response)
    return ServerError(full_msg, status_code=status, response=response)


class InterceptorChain:
    """Ordered request and response stages around one adapter.

    Args:
        adapter: Coroutine function performing the send step.

    Example::

        chain = InterceptorChain(transport.send)
        chain.use_request("retry", retry.on_request)
        chain.use_response("retry", on_success=retry.on_success, on_error=retry.on_error)
        response = await chain.dispatch(RequestContext(url="/v3/content_types"))
    """

    def __init__(self, adapter: Adapter) -> None:
        self.adapter = adapter
        self._request_stages: list[RequestStage] = []
        self._response_stages: list[ResponseStage] = []

    def use_request(self, name: str, handler: RequestHandler) -> None:
        """Append a request stage."""
        self._request_stages.append(RequestStage(name, handler))

    def use_response(
        self,
        name: str,
        on_success: Optional[SuccessHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        """Append a response stage."""
        self._response_stages.append(ResponseStage(name, on_success, on_error))

    @property
    def request_stage_names(self) -> list[str]:
        return [stage.name for stage in self._request_stages]

    @property
    def response_stage_names(self) -> list[str]:
        return [stage.name for stage in self._response_stages]

    async def dispatch(self, ctx: RequestContext) -> httpx.Response:
        """Run *ctx* through every stage and return the final response.

        Raises:
            DeliveryError: Or whatever the last failing stage raised, when
                no ``on_error`` handler recovered from the failure.
        """
        response: Optional[httpx.Response] = None
        error: Optional[Exception] = None

        try:
            for stage in self._request_stages:
                ctx = await stage.handler(ctx)
            response = await self.adapter(ctx)
            failure = map_response_error(response)
            if failure is not None:
                raise failure
        except Exception as exc:
            error = exc

        for stage in self._response_stages:
            try:
                if error is None:
                    if stage.on_success is not None:
                        response = await stage.on_success(ctx, response)
                elif stage.on_error is not None:
                    response = await stage.on_error(ctx, error)
                    error = None
            except Exception as exc:
                error = exc

        if error is not None:
            raise error
        return response
