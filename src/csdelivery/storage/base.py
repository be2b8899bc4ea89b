"""Abstract base class for key/value storage backends.

A backend holds string values under string keys.  It knows nothing about
expiry or serialisation; :class:`~csdelivery.persistence.PersistenceStore`
layers those on top.  Callers may plug in their own backend (for example
one backed by a database) by subclassing :class:`StorageBackend` or by
supplying any object with the same five methods.

Example:
    Minimal custom backend::

        class DictStorage(StorageBackend):
            def __init__(self):
                self._data = {}

            @property
            def name(self) -> str:
                return "dict"

            def get(self, key):
                return self._data.get(key)

            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

Visitor = Callable[[Optional[str], str], None]
"""Callback passed to :meth:`StorageBackend.for_each`, called as ``visit(value, key)``."""


class StorageBackend(ABC):
    """Base class for all storage backends.

    Contract shared by every implementation:

    * Missing keys never raise; :meth:`get` returns ``None``.
    * :meth:`set` and :meth:`remove` are no-ops for an empty key.
    * :meth:`for_each` visits a snapshot of the keys present when it was
      called, so the visitor may remove entries while iterating.
    * State never leaks between two backend instances.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs (e.g. ``"memoryStorage"``)."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None``."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key* if present."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every key held by this backend."""
        ...

    @abstractmethod
    def for_each(self, visit: Visitor) -> None:
        """Call ``visit(value, key)`` for every key currently held."""
        ...
