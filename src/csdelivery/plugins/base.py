"""Base class for request/response plugins.

A plugin observes or rewrites every request a stack sends and every
response it receives.  Both hooks are optional: subclasses of
:class:`Plugin` only override what they need, and plain objects that
define just ``on_request`` or just ``on_response`` are accepted as well.
Either hook may be a coroutine function.

Example:
    Header-injecting plugin::

        class TraceHeader(Plugin):
            def on_request(self, request):
                request.headers["x-trace-id"] = new_trace_id()
                return request
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Optional, Union

if TYPE_CHECKING:
    import httpx

    from csdelivery.context import RequestContext


class Plugin:
    """Base class for csdelivery plugins.

    Hooks default to pass-through.  Order matters:

    * ``on_request`` runs in registration order, before every attempt
      (retries included).
    * ``on_response`` runs in reverse registration order, once, on the
      final successful response.  Failed attempts never reach it.

    A hook returning ``None`` leaves the request or response unchanged.
    """

    @property
    def name(self) -> str:
        """Identifier used in error messages and logs.  Defaults to the class name."""
        return type(self).__name__

    def on_request(
        self, request: RequestContext
    ) -> Union[Optional[RequestContext], Awaitable[Optional[RequestContext]]]:
        """Called before each attempt is handed to the transport.

        Args:
            request: The request context, already processed by earlier plugins.

        Returns:
            The (possibly modified or replaced) request context.
        """
        return request

    def on_response(
        self, request: RequestContext, response: httpx.Response, data: Any
    ) -> Union[Optional[httpx.Response], Awaitable[Optional[httpx.Response]]]:
        """Called with the final successful response.

        Args:
            request: The request context of the attempt that succeeded.
            response: The response, already processed by later-registered plugins.
            data: The decoded body of *response* (JSON, text, or ``None``).

        Returns:
            The (possibly replaced) response.
        """
        return response
