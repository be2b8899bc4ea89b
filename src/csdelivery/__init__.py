"""csdelivery -- async Python client for a hosted content delivery API.

The package builds HTTP requests against the delivery API and runs each of
them through a fixed pipeline: retry, user plugins, and an optional
read-through cache backed by an expiring, namespaced persistence store.

Typical use::

    import csdelivery

    async with csdelivery.stack(api_key="...", delivery_token="...",
                                environment="production") as s:
        entries = await s.entries("blog_post")

Modules:
    stack: :func:`stack` factory and the :class:`Stack` facade.
    client: The async HTTP client and its interceptor chain.
    cache: The cache-policy adapter.
    persistence: The expiring, namespaced key/value store.
    storage: Storage backends (memory, disk, custom).
    plugins: Plugin base class and hook runner.
    models: Pydantic configuration models.
    exceptions: Exception hierarchy with exit-code mapping.
"""

__version__ = "0.1.0"

from csdelivery.exceptions import ConfigError, DeliveryError, PluginError  # noqa: E402
from csdelivery.models import CacheOptions, Policy, StackConfig, StoreType  # noqa: E402
from csdelivery.persistence import PersistenceStore  # noqa: E402
from csdelivery.plugins import Plugin  # noqa: E402
from csdelivery.stack import Stack, stack  # noqa: E402
from csdelivery.storage import DiskStorage, MemoryStorage, StorageBackend  # noqa: E402

__all__ = [
    "__version__",
    "stack",
    "Stack",
    "StackConfig",
    "CacheOptions",
    "Policy",
    "StoreType",
    "PersistenceStore",
    "Plugin",
    "StorageBackend",
    "MemoryStorage",
    "DiskStorage",
    "DeliveryError",
    "ConfigError",
    "PluginError",
]
