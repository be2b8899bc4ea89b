"""Request context threaded through the pipeline, plus response helpers.

:class:`RequestContext` is the "request" every pipeline stage and plugin
receives.  It starts out holding what the caller asked for and is
progressively rewritten by the request-side stages before the transport
turns it into an :class:`httpx.Request`.

The retry stage captures a pristine copy (``origin``) before any plugin
runs, and each retry is dispatched from a fresh copy of that origin with
``retry_count`` incremented.  A retried request therefore looks to plugins
exactly like a new one, apart from its attempt counter.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Optional

import httpx


@dataclass
class RequestContext:
    """Mutable description of one logical request.

    Attributes:
        method: HTTP method (e.g. ``"GET"``).
        url: Path relative to the stack's base URL, or an absolute URL.
        headers: Request headers (mutable).
        params: Query parameters (mutable).
        json_body: Optional JSON-serialisable body.
        namespace: Cache partition tag, usually a content type uid.
        retry_count: Number of retries already performed for this request.
        extensions: Free-form values plugins may use to pass data along.
        origin: Pristine copy captured before the first plugin ran.
    """

    method: str = "GET"
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    json_body: Any = None
    namespace: Optional[str] = None
    retry_count: int = 0
    extensions: dict[str, Any] = field(default_factory=dict)
    origin: Optional[RequestContext] = field(default=None, repr=False, compare=False)

    @property
    def attempt(self) -> int:
        """1-based number of the attempt this context describes."""
        return self.retry_count + 1

    def snapshot(self) -> RequestContext:
        """Return a deep copy of this context without its ``origin``."""
        return replace(
            self,
            headers=dict(self.headers),
            params=copy.deepcopy(self.params),
            json_body=copy.deepcopy(self.json_body),
            extensions=dict(self.extensions),
            origin=None,
        )

    def replay(self) -> RequestContext:
        """Return the context for the next attempt of this request."""
        base = self.origin or self
        fresh = base.snapshot()
        fresh.retry_count = self.retry_count + 1
        fresh.origin = base
        return fresh


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first.  If that fails (e.g. the
    response is HTML or plain text), returns the raw text.  Returns
    ``None`` for responses with no content.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
