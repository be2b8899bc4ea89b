"""Persistence layer: expiring, namespaced entries over a storage backend.

The store is consumed by :class:`~csdelivery.cache.CacheAdapter` and is
passed to a stack through ``cache_options.persistence_store``.
"""

from csdelivery.persistence.store import STORE_DISCRIMINATOR, PersistenceStore

__all__ = ["PersistenceStore", "STORE_DISCRIMINATOR"]
