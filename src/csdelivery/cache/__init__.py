"""Read-through response caching for the request pipeline.

This package provides :class:`CacheAdapter`, the pipeline send step that
applies a :class:`~csdelivery.models.Policy` using a
:class:`~csdelivery.persistence.PersistenceStore`.
"""

from csdelivery.cache.adapter import CACHE_HEADER, CacheAdapter, make_cache_key, stack_identity

__all__ = ["CacheAdapter", "CACHE_HEADER", "make_cache_key", "stack_identity"]
