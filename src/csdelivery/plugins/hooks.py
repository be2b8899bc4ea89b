"""Runner executing plugin hooks around every request.

:class:`HookRunner` threads the request through each plugin's
``on_request`` in registration order and the response through each
``on_response`` in reverse order, so the first registered plugin is the
outermost layer on both sides.  Hooks may be synchronous or coroutines;
results are awaited one at a time, in order.

A hook that raises fails the current request with
:class:`~csdelivery.exceptions.PluginError`.  The runner holds no
per-request state, so other requests in flight and later requests are
unaffected.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Sequence

import httpx

from csdelivery.context import RequestContext, extract_response_data
from csdelivery.exceptions import PluginError

logger = logging.getLogger(__name__)


def plugin_name(plugin: Any) -> str:
    """Return a display name for *plugin*, which may be any object."""
    name = getattr(plugin, "name", None)
    return name if isinstance(name, str) and name else type(plugin).__name__


class HookRunner:
    """Executes plugin hooks across an immutable snapshot of plugins.

    Args:
        plugins: Ordered plugin instances.  Any object is accepted; hooks
            it does not define are skipped.
    """

    def __init__(self, plugins: Sequence[Any]) -> None:
        self._plugins = tuple(plugins)

    @property
    def plugins(self) -> tuple[Any, ...]:
        return self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    async def run_on_request(self, request: RequestContext) -> RequestContext:
        """Run ``on_request`` hooks in registration order.

        Raises:
            PluginError: If a hook raises.
        """
        for plugin in self._plugins:
            hook = getattr(plugin, "on_request", None)
            if hook is None:
                continue
            result = await self._call(plugin, "on_request", hook, request)
            if result is not None:
                if result is not request:
                    # A replacement inherits the attempt counter and origin.
                    result.origin = result.origin or request.origin
                    result.retry_count = request.retry_count
                request = result
        return request

    async def run_on_response(
        self, request: RequestContext, response: httpx.Response
    ) -> httpx.Response:
        """Run ``on_response`` hooks in reverse registration order.

        Raises:
            PluginError: If a hook raises.
        """
        for plugin in reversed(self._plugins):
            hook = getattr(plugin, "on_response", None)
            if hook is None:
                continue
            data = extract_response_data(response)
            result = await self._call(plugin, "on_response", hook, request, response, data)
            if result is not None:
                response = result
        return response

    @staticmethod
    async def _call(plugin: Any, hook_name: str, hook: Any, *args: Any) -> Any:
        try:
            result = hook(*args)
            if inspect.isawaitable(result):
                result = await result
        except PluginError:
            raise
        except Exception as exc:
            name = plugin_name(plugin)
            logger.warning("Plugin '%s' failed in %s: %s", name, hook_name, exc)
            raise PluginError(f"Plugin '{name}' failed in {hook_name}: {exc}") from exc
        return result
