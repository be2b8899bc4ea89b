"""Key/value storage backends used by the persistence store.

* :class:`StorageBackend` -- abstract base every backend implements.
* :class:`MemoryStorage` -- dict-backed, lives as long as the instance.
* :class:`DiskStorage` -- :mod:`diskcache`-backed, survives restarts.
"""

from csdelivery.storage.base import StorageBackend
from csdelivery.storage.disk import DiskStorage
from csdelivery.storage.memory import MemoryStorage

__all__ = ["StorageBackend", "MemoryStorage", "DiskStorage"]
