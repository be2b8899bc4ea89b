"""HTTP client and request pipeline for csdelivery.

Classes:
    :class:`AsyncClient` -- :class:`httpx.AsyncClient` wrapped in the
    composed pipeline (retry, plugins, cache).
    :class:`InterceptorChain` -- the ordered stage list the pipeline is
    built from.
    :class:`RetryStage` -- retry policy handlers.

Example::

    from csdelivery.client import AsyncClient

    async with AsyncClient(config, base_url) as client:
        resp = await client.get("/v3/content_types")
"""

from csdelivery.client.async_client import AsyncClient
from csdelivery.client.chain import InterceptorChain, map_response_error
from csdelivery.client.retry import RetryStage, default_retry_condition

__all__ = [
    "AsyncClient",
    "InterceptorChain",
    "RetryStage",
    "default_retry_condition",
    "map_response_error",
]
