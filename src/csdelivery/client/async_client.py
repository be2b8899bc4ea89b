"""Asynchronous HTTP client composing the request pipeline.

This module provides :class:`AsyncClient`, the transport a
:class:`~csdelivery.stack.Stack` sends every request through.  It wraps
:class:`httpx.AsyncClient` and wires, at construction time, one
:class:`~csdelivery.client.chain.InterceptorChain` in a fixed order::

    request:   retry -> plugins -> [debug]
    send:      cache adapter over the network (or the network alone)
    response:  [debug] -> plugins -> retry

Consequences of that order:

- every retry re-runs the plugins' ``on_request`` hooks;
- the retry stage sees the untouched transport failure, because failed
  attempts skip the plugins' ``on_response`` hooks;
- plugins see only the final, already-retried successful response.

See Also:
    :class:`~csdelivery.client.retry.RetryStage`,
    :class:`~csdelivery.cache.CacheAdapter`,
    :class:`~csdelivery.plugins.HookRunner`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from csdelivery.cache import CacheAdapter
from csdelivery.client.chain import InterceptorChain
from csdelivery.client.debug import DebugLogger
from csdelivery.client.retry import RetryStage
from csdelivery.context import RequestContext
from csdelivery.exceptions import ConnectionError_
from csdelivery.models import Policy, StackConfig
from csdelivery.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)


class AsyncClient:
    """Asynchronous client running requests through the composed pipeline.

    Args:
        config: Validated stack configuration (retry, plugins, cache,
            timeout, debug and transport options are read from it).
        base_url: Base URL every relative path is resolved against.
        headers: Default headers merged into every request context.
        params: Default query parameters merged into every request context.

    Raises:
        ConfigError: The cache policy needs a persistence store and none
            was configured.

    Example::

        async with AsyncClient(config, "https://cdn.contentstack.io") as client:
            response = await client.get("/v3/content_types")
    """

    def __init__(
        self,
        config: StackConfig,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> None:
        self._config = config
        self.default_headers: dict[str, str] = dict(headers or {})
        self.default_params: dict[str, Any] = dict(params or {})
        self.hook_runner = HookRunner(config.plugins)
        self.cache: Optional[CacheAdapter] = None
        cache_options = config.cache_options
        if cache_options is not None and cache_options.policy != Policy.IGNORE_CACHE:
            self.cache = CacheAdapter(cache_options, self._send, url_for=self._absolute_url)

        # Created only once the cache options are valid.
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=config.timeout,
            transport=config.transport,
            follow_redirects=True,
        )

        self.chain = InterceptorChain(self.cache or self._send)
        self.retry = RetryStage(config.retry_config(), self.chain.dispatch)
        debug_logger = DebugLogger(config.log_handler) if config.debug else None

        self.chain.use_request("retry", self.retry.on_request)
        if len(self.hook_runner):
            self.chain.use_request("plugins", self.hook_runner.run_on_request)
        if debug_logger is not None:
            self.chain.use_request("debug", debug_logger.on_request)
            self.chain.use_response(
                "debug", on_success=debug_logger.on_success, on_error=debug_logger.on_error
            )
        if len(self.hook_runner):
            self.chain.use_response("plugins", on_success=self.hook_runner.run_on_response)
        self.chain.use_response(
            "retry", on_success=self.retry.on_success, on_error=self.retry.on_error
        )

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for background cache refreshes, then close the HTTP client."""
        if self.cache is not None:
            await self.cache.wait_for_refreshes()
        await self._client.aclose()

    async def wait_for_refreshes(self) -> None:
        """Wait for the background refreshes started by ``CACHE_THEN_NETWORK`` hits."""
        if self.cache is not None:
            await self.cache.wait_for_refreshes()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        namespace: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request through the pipeline.

        Args:
            method: HTTP method.
            path: URL path appended to the base URL.
            params: Query parameters, merged over the default ones.
            headers: Extra headers, merged over the default ones.
            json_body: JSON-serialisable body.
            namespace: Cache partition tag (a content type uid).

        Returns:
            The final successful :class:`httpx.Response`.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            RateLimitError: On 429 after all retries.
            ServerError: On other error statuses after all retries.
            ConnectionError_: On network / timeout errors after all retries.
            PluginError: When a plugin hook raised.
        """
        ctx = RequestContext(
            method=method.upper(),
            url=path,
            headers={**self.default_headers, **(headers or {})},
            params={**self.default_params, **(params or {})},
            json_body=json_body,
            namespace=namespace,
        )
        return await self.chain.dispatch(ctx)

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request.  ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request.  ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request("POST", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _absolute_url(self, ctx: RequestContext) -> str:
        return str(self._client.build_request(ctx.method, ctx.url, params=ctx.params).url)

    async def _send(self, ctx: RequestContext) -> httpx.Response:
        """Network send step: one HTTP exchange, transport errors mapped."""
        kwargs: dict[str, Any] = {
            "method": ctx.method,
            "url": ctx.url,
            "headers": ctx.headers,
            "params": ctx.params,
        }
        if ctx.json_body is not None:
            kwargs["json"] = ctx.json_body
        try:
            return await self._client.request(**kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection failed: {exc}") from exc
