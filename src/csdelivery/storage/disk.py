"""Disk-backed storage backend.

Uses :mod:`diskcache` to keep entries on the filesystem so they survive a
process restart.  Expiry is handled one layer up by
:class:`~csdelivery.persistence.PersistenceStore`, which stores its own
expiry timestamp in every value, so entries are written here without a
diskcache TTL.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import diskcache

from csdelivery.storage.base import StorageBackend, Visitor

logger = logging.getLogger(__name__)


class DiskStorage(StorageBackend):
    """Persistent backend storing string values in a :class:`diskcache.Cache`.

    Args:
        directory: Directory holding the cache files.  When ``None`` the
            ``store/`` subdirectory of :func:`~csdelivery.config.get_cache_dir`
            is used.

    Example::

        storage = DiskStorage("/tmp/csdelivery-store")
        storage.set("greeting", "hello")
        assert storage.get("greeting") == "hello"
        storage.close()
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        if directory is None:
            from csdelivery.config import get_cache_dir

            directory = get_cache_dir() / "store"
        self._directory = Path(directory)
        self._cache = diskcache.Cache(str(self._directory))
        logger.debug("Opened disk storage at %s", self._directory)

    @property
    def name(self) -> str:
        return "diskStorage"

    @property
    def directory(self) -> Path:
        """Directory holding the cache files."""
        return self._directory

    def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    def set(self, key: str, value: str) -> None:
        if not key:
            return
        self._cache.set(key, value)

    def remove(self, key: str) -> None:
        if not key:
            return
        self._cache.delete(key)

    def clear(self) -> None:
        self._cache.clear()

    def for_each(self, visit: Visitor) -> None:
        for key in list(self._cache.iterkeys()):
            visit(self._cache.get(key), key)

    def __len__(self) -> int:
        return len(self._cache)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()
