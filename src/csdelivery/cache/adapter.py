"""Cache-policy adapter: decides between the persistence store and the network.

:class:`CacheAdapter` takes the place of the send step in the
:class:`~csdelivery.client.chain.InterceptorChain`.  For GET requests it
consults a :class:`~csdelivery.persistence.PersistenceStore` according to
the configured :class:`~csdelivery.models.Policy`:

* ``CACHE_ELSE_NETWORK`` -- a stored, unexpired value is returned without
  touching the network; on a miss the network response is stored.
* ``CACHE_THEN_NETWORK`` -- a stored value is returned immediately and a
  background network call refreshes the store; on a miss the network
  response is returned and stored.
* ``NETWORK_ELSE_CACHE`` -- the network is tried first and a successful
  response always overwrites the store; on a network failure the stored
  value is returned when there is one.
* ``IGNORE_CACHE`` -- every request goes to the network.

Only decoded JSON bodies of 2xx responses are stored.  Cache keys are
SHA-256 hashes of ``METHOD|URL|sorted_params`` plus the stack identity
headers (``api_key``, ``branch``, ``x-header-ea``), so stacks sharing a
store never read each other's entries.  The request's ``namespace`` (a
content type uid) partitions them.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from csdelivery.context import RequestContext
from csdelivery.exceptions import ConfigError, ConnectionError_
from csdelivery.models import CacheOptions, Policy

logger = logging.getLogger(__name__)

CACHE_HEADER = "x-csdelivery-cache"
"""Header set on responses served from the persistence store."""

MISSING_PERSISTENCE_STORE = (
    "Cache policy {policy} requires cache_options.persistence_store. "
    "Pass a PersistenceStore instance and try again."
)

Send = Callable[[RequestContext], Awaitable[httpx.Response]]


IDENTITY_HEADERS = ("api_key", "branch", "x-header-ea")
"""Request headers that identify the stack a response belongs to."""


def stack_identity(headers: dict[str, str]) -> dict[str, str]:
    """Return the identity headers present in *headers*, with lower-cased names."""
    lowered = {name.lower(): value for name, value in headers.items()}
    return {name: lowered[name] for name in IDENTITY_HEADERS if lowered.get(name)}


def make_cache_key(
    method: str,
    url: str,
    params: Optional[dict[str, Any]],
    identity: Optional[dict[str, str]] = None,
) -> str:
    """Generate a cache key from method, URL, sorted params and stack identity.

    Two stacks sharing a store only share entries when their API key,
    branch and early-access headers are equal.
    """
    parts = [method.upper(), url]
    if params:
        parts.append(json.dumps(params, sort_keys=True, default=str))
    if identity:
        parts.append("identity=" + json.dumps(identity, sort_keys=True))
    raw = "|".join(parts)
    return hashlib.sha256(raw.encode()).hexdigest()


class CacheAdapter:
    """Send step applying a cache policy around another send step.

    Args:
        options: Cache policy and persistence store.
        send: The underlying network send step.
        url_for: Returns the absolute URL of a request; used for cache
            keys and for the synthetic response of a cache hit.

    Raises:
        ConfigError: The policy needs a store and none was given.
    """

    def __init__(
        self,
        options: CacheOptions,
        send: Send,
        url_for: Optional[Callable[[RequestContext], str]] = None,
    ) -> None:
        if options.policy != Policy.IGNORE_CACHE and options.persistence_store is None:
            raise ConfigError(MISSING_PERSISTENCE_STORE.format(policy=options.policy.value))
        self.options = options
        self.store = options.persistence_store
        self._send = send
        self._url_for = url_for or (lambda ctx: ctx.url)
        self._refreshes: set[asyncio.Task] = set()

    @property
    def policy(self) -> Policy:
        return self.options.policy

    async def __call__(self, ctx: RequestContext) -> httpx.Response:
        if self.policy == Policy.IGNORE_CACHE or ctx.method.upper() != "GET":
            return await self._send(ctx)

        url = self._url_for(ctx)
        key = make_cache_key(ctx.method, url, ctx.params, stack_identity(ctx.headers))

        if self.policy == Policy.CACHE_ELSE_NETWORK:
            cached = self.store.get_item(key, ctx.namespace)
            if cached is not None:
                logger.debug("Cache hit: %s %s", ctx.method, url)
                return self._cached_response(ctx, url, cached)
            return await self._fetch_and_store(ctx, key)

        if self.policy == Policy.CACHE_THEN_NETWORK:
            cached = self.store.get_item(key, ctx.namespace)
            if cached is not None:
                logger.debug("Cache hit, refreshing in background: %s %s", ctx.method, url)
                self._schedule_refresh(ctx.snapshot(), key)
                return self._cached_response(ctx, url, cached)
            return await self._fetch_and_store(ctx, key)

        return await self._network_else_cache(ctx, url, key)

    async def wait_for_refreshes(self) -> None:
        """Wait until every pending background refresh has finished."""
        while self._refreshes:
            await asyncio.gather(*list(self._refreshes), return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _network_else_cache(
        self, ctx: RequestContext, url: str, key: str
    ) -> httpx.Response:
        try:
            response = await self._send(ctx)
        except ConnectionError_:
            cached = self.store.get_item(key, ctx.namespace)
            if cached is None:
                raise
            logger.debug("Network failed, serving cached value: %s %s", ctx.method, url)
            return self._cached_response(ctx, url, cached)

        if response.is_success:
            self._store_response(ctx, key, response)
            return response

        cached = self.store.get_item(key, ctx.namespace)
        if cached is None:
            return response
        logger.debug(
            "Network returned %d, serving cached value: %s %s",
            response.status_code,
            ctx.method,
            url,
        )
        return self._cached_response(ctx, url, cached)

    async def _fetch_and_store(self, ctx: RequestContext, key: str) -> httpx.Response:
        response = await self._send(ctx)
        if response.is_success:
            self._store_response(ctx, key, response)
        return response

    def _store_response(self, ctx: RequestContext, key: str, response: httpx.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            return
        self.store.set_item(key, body, ctx.namespace, self.options.max_age)

    def _schedule_refresh(self, ctx: RequestContext, key: str) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh(ctx, key))
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def _refresh(self, ctx: RequestContext, key: str) -> None:
        try:
            await self._fetch_and_store(ctx, key)
        except Exception as exc:
            logger.warning("Background refresh of %s %s failed: %s", ctx.method, ctx.url, exc)

    @staticmethod
    def _cached_response(ctx: RequestContext, url: str, body: Any) -> httpx.Response:
        return httpx.Response(
            status_code=200,
            headers={CACHE_HEADER: "hit"},
            json=body,
            request=httpx.Request(method=ctx.method, url=url),
        )
