"""Stack: the configured entry point to the content delivery API.

:func:`stack` validates the caller's options, resolves the host, builds
the default headers and query parameters, and constructs one
:class:`~csdelivery.client.AsyncClient` with the full pipeline attached.
Every configuration problem (missing credentials, unknown options, a cache
policy without a persistence store) raises
:class:`~csdelivery.exceptions.ConfigError` here, before any request.

The read helpers on :class:`Stack` are thin wrappers that return decoded
JSON.  Entry and content type reads pass the content type uid as the cache
namespace.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from csdelivery import __version__
from csdelivery.client import AsyncClient
from csdelivery.config import build_stack_config
from csdelivery.models import StackConfig

logger = logging.getLogger(__name__)

DEFAULT_HOST = "cdn.contentstack.io"
API_VERSION = "v3"
SYNC_PATH = "/stacks/sync"

_PUBLISH_TYPES_KEY = "type"


def host_for_region(region: str = "us", host: Optional[str] = None) -> str:
    """Return *host* when given, else the CDN host of *region*."""
    if host:
        return host
    if not region or region.lower() == "us":
        return DEFAULT_HOST
    return f"{region.lower()}-cdn.contentstack.com"


def _base_url(config: StackConfig) -> str:
    host = host_for_region(config.region, config.host)
    if "://" not in host:
        host = f"https://{host}"
    if config.port:
        host = f"{host}:{config.port}"
    return f"{host}/{API_VERSION}"


def _default_headers(config: StackConfig) -> dict[str, str]:
    headers = {
        "api_key": config.api_key,
        "access_token": config.delivery_token,
        "X-User-Agent": f"csdelivery-python/{__version__}",
    }
    if config.branch:
        headers["branch"] = config.branch
    if config.early_access:
        headers["x-header-ea"] = ",".join(config.early_access)
    return headers


def _default_params(config: StackConfig) -> dict[str, Any]:
    params: dict[str, Any] = {"environment": config.environment}
    if config.locale:
        params["locale"] = config.locale
    return params


class Stack:
    """A configured stack bundling transport, retry, plugins and cache.

    Prefer :func:`stack` to build one from keyword options.

    Args:
        config: A validated :class:`~csdelivery.models.StackConfig`.
    """

    def __init__(self, config: StackConfig) -> None:
        self.config = config
        self._client = AsyncClient(
            config,
            base_url=_base_url(config),
            headers=_default_headers(config),
            params=_default_params(config),
        )
        logger.debug(
            "Stack ready: host=%s plugins=%d cache=%s",
            host_for_region(config.region, config.host),
            len(config.plugins),
            config.cache_options.policy.value if config.cache_options else "none",
        )

    @property
    def client(self) -> AsyncClient:
        return self._client

    async def __aenter__(self) -> Stack:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP client once pending cache refreshes have finished."""
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Raw access
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        namespace: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request through the pipeline and return the response."""
        return await self._client.request(
            method, path, params=params, headers=headers, namespace=namespace
        )

    async def fetch(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        namespace: Optional[str] = None,
    ) -> Any:
        """GET *path* and return the decoded JSON body."""
        response = await self._client.get(path, params=params, namespace=namespace)
        return response.json()

    # ------------------------------------------------------------------ #
    # Read helpers
    # ------------------------------------------------------------------ #

    async def content_types(self, **params: Any) -> Any:
        return await self.fetch("/content_types", params)

    async def content_type(self, uid: str, **params: Any) -> Any:
        return await self.fetch(f"/content_types/{uid}", params, namespace=uid)

    async def entries(self, content_type_uid: str, **params: Any) -> Any:
        """Return the entries of *content_type_uid*; ``params`` become query parameters."""
        return await self.fetch(
            f"/content_types/{content_type_uid}/entries", params, namespace=content_type_uid
        )

    async def entry(self, content_type_uid: str, entry_uid: str, **params: Any) -> Any:
        return await self.fetch(
            f"/content_types/{content_type_uid}/entries/{entry_uid}",
            params,
            namespace=content_type_uid,
        )

    async def assets(self, **params: Any) -> Any:
        return await self.fetch("/assets", params)

    async def asset(self, uid: str, **params: Any) -> Any:
        return await self.fetch(f"/assets/{uid}", params)

    async def global_fields(self, **params: Any) -> Any:
        return await self.fetch("/global_fields", params)

    async def global_field(self, uid: str, **params: Any) -> Any:
        return await self.fetch(f"/global_fields/{uid}", params)

    async def taxonomies(self, **params: Any) -> Any:
        return await self.fetch("/taxonomies/entries", params)

    async def last_activities(self) -> Any:
        """Return the last publish activity of every content type."""
        return await self.fetch("/content_types", {"only_last_activity": "true"})

    async def sync(self, params: Optional[dict[str, Any]] = None, recursive: bool = False) -> Any:
        """Run a sync request.

        Without ``pagination_token`` or ``sync_token`` an initial sync is
        requested (``init=true``).  A list ``type`` is sent comma-separated.
        With ``recursive=True`` every ``pagination_token`` is followed and
        the items of all pages are concatenated into the last page's body.

        Args:
            params: Sync parameters (``locale``, ``start_date``,
                ``content_type_uid``, ``type``, ``pagination_token``,
                ``sync_token``).
            recursive: Follow pagination tokens until the last page.
        """
        query = dict(params or {})
        if "pagination_token" not in query and "sync_token" not in query:
            query["init"] = "true"
        publish_types = query.get(_PUBLISH_TYPES_KEY)
        if isinstance(publish_types, (list, tuple)):
            query[_PUBLISH_TYPES_KEY] = ",".join(publish_types)

        data = await self.fetch(SYNC_PATH, query)
        items = list(data.get("items", []))
        while recursive and "pagination_token" in data:
            data = await self.fetch(SYNC_PATH, {"pagination_token": data["pagination_token"]})
            items.extend(data.get("items", []))
        if recursive:
            data["items"] = items
        return data

    # ------------------------------------------------------------------ #
    # Mutators
    # ------------------------------------------------------------------ #

    def set_locale(self, locale: str) -> Stack:
        """Send *locale* with every following request."""
        self.config.locale = locale
        self._client.default_params["locale"] = locale
        return self

    def live_preview_query(self, query: dict[str, Any]) -> Stack:
        """Point following requests at a live preview session.

        ``live_preview``, ``content_type_uid`` and ``entry_uid`` are stored in
        the stack's ``live_preview`` settings.  ``release_id`` and
        ``preview_timestamp`` become headers and are removed again when a
        later query omits them.
        """
        if self.config.live_preview:
            settings = dict(self.config.live_preview)
            settings.update(
                live_preview=query.get("live_preview", ""),
                content_type_uid=query.get("content_type_uid", "") if query.get("live_preview") else "",
                entry_uid=query.get("entry_uid", "") if query.get("live_preview") else "",
                preview_timestamp=query.get("preview_timestamp", ""),
                include_applied_variants=bool(query.get("include_applied_variants", False)),
            )
            self.config.live_preview = settings

        headers = self._client.default_headers
        for header in ("release_id", "preview_timestamp"):
            if header in query:
                headers[header] = str(query[header])
            else:
                headers.pop(header, None)
        return self


def stack(config: StackConfig | dict[str, Any] | None = None, **options: Any) -> Stack:
    """Build a :class:`Stack` from a config object, a dict, or keyword options.

    Raises:
        ConfigError: On missing credentials, unknown options, or a cache
            policy without ``cache_options.persistence_store``.

    Example::

        import csdelivery

        store = csdelivery.PersistenceStore(store_type="memoryStorage")
        s = csdelivery.stack(
            api_key="blt123",
            delivery_token="cs456",
            environment="production",
            cache_options={"policy": "CACHE_ELSE_NETWORK", "persistence_store": store},
        )
        entries = await s.entries("blog_post", limit=10)
    """
    if isinstance(config, StackConfig):
        if options:
            config = build_stack_config({**dict(config), **options})
        return Stack(config)
    return Stack(build_stack_config({**(config or {}), **options}))
