"""Persistence store: TTL expiry and key namespacing over a storage backend.

Every value is wrapped in an envelope ``{"value": ..., "expiry": ...}``
where ``expiry`` is an absolute epoch timestamp in milliseconds, then
serialised (JSON by default) and written to a
:class:`~csdelivery.storage.StorageBackend`.  An expiry of ``0`` means the
entry was stored without a lifetime and is treated as already expired.

Keys are generated as ``<name>_<namespace>_cs_store_py_<key>`` (the
namespace part is dropped when no namespace is given), so the same raw key
under two namespaces maps to two independent entries.

See Also:
    :class:`~csdelivery.cache.CacheAdapter` -- the pipeline stage that
    reads and writes API responses through this store.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from csdelivery.exceptions import ConfigError, StorageConfigError
from csdelivery.models import PersistenceStoreConfig, StoreType
from csdelivery.storage import DiskStorage, MemoryStorage, StorageBackend

logger = logging.getLogger(__name__)

STORE_DISCRIMINATOR = "cs_store_py"
"""Fixed token separating the namespace from the caller's key."""

_BACKEND_METHODS = ("get", "set", "remove", "clear", "for_each")


def _system_clock() -> float:
    return time.time() * 1000


class PersistenceStore:
    """Key/value store with per-entry expiry on top of a storage backend.

    Args:
        config: Store options.  A plain dict is accepted and validated.
            Keyword arguments are merged on top of it.
        clock: Callable returning the current epoch time in milliseconds.
            Inject a fake in tests.

    Raises:
        StorageConfigError: ``store_type`` is ``customStorage`` and no
            ``storage`` was supplied.
        ConfigError: Any other invalid option, including an unknown
            ``store_type`` or a custom storage missing backend methods.

    Example::

        store = PersistenceStore(store_type="memoryStorage", max_age=60_000)
        store.set_item("entries", [{"uid": "blt1"}], namespace="blog_post")
        store.get_item("entries", namespace="blog_post")
    """

    def __init__(
        self,
        config: PersistenceStoreConfig | dict[str, Any] | None = None,
        clock: Optional[Callable[[], float]] = None,
        **options: Any,
    ) -> None:
        if isinstance(config, PersistenceStoreConfig):
            raw = {**dict(config), **options}
        else:
            raw = {**(config or {}), **options}
        try:
            self.config = PersistenceStoreConfig(**raw)
        except ValidationError as exc:
            from csdelivery.config import validation_message

            raise ConfigError(f"Invalid persistence store configuration: {validation_message(exc)}") from None
        self.name = self.config.name
        self._clock = clock or _system_clock
        self.store = self._create_backend(self.config)

    @staticmethod
    def _create_backend(config: PersistenceStoreConfig) -> StorageBackend:
        if config.store_type == StoreType.MEMORY:
            return MemoryStorage()
        if config.store_type == StoreType.CUSTOM:
            storage = config.storage
            if storage is None:
                raise StorageConfigError("StorageType `customStorage` should have `storage`.")
            missing = [m for m in _BACKEND_METHODS if not callable(getattr(storage, m, None))]
            if missing:
                raise ConfigError(
                    f"Custom storage is missing required methods: {', '.join(missing)}"
                )
            return storage
        return DiskStorage(config.directory)

    @property
    def max_age(self) -> Optional[int]:
        """Configured entry lifetime in milliseconds."""
        return self.config.max_age

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def set_item(
        self,
        key: str,
        value: Any,
        namespace: Optional[str] = None,
        max_age: Optional[int] = None,
    ) -> None:
        """Store *value* under *key* with an expiry.

        A falsy *value* deletes the entry instead of writing it.

        Args:
            key: Caller key.  An empty key is ignored.
            value: Anything the configured serializer accepts.
            namespace: Optional partition tag (e.g. a content type uid).
            max_age: Lifetime in milliseconds, overriding the configured one.
        """
        if not key:
            return
        generated = self._generate_key(key, namespace)
        if not value:
            self.store.remove(generated)
            return
        envelope = {"value": value, "expiry": self._calculate_expiry(max_age)}
        self.store.set(generated, self.config.serializer(envelope))

    def get_item(self, key: str, namespace: Optional[str] = None) -> Any:
        """Return the value stored under *key*, or ``None`` if absent or expired.

        Expired entries are deleted as a side effect.  An envelope that
        cannot be deserialised counts as absent.
        """
        generated = self._generate_key(key, namespace)
        content = self.store.get(generated)
        if not content:
            return None
        try:
            item = self.config.deserializer(content)
        except Exception as exc:
            logger.debug("Discarding undecodable entry '%s': %s", generated, exc)
            return None
        if not isinstance(item, dict) or "value" not in item:
            return None
        if self._is_expired(item.get("expiry")):
            self.store.remove(generated)
            return None
        return item["value"]

    def remove_item(self, key: str, namespace: Optional[str] = None) -> None:
        """Delete the entry stored under *key*."""
        self.store.remove(self._generate_key(key, namespace))

    def clear(self, namespace: Optional[str] = None) -> None:
        """Delete every entry, or only the entries of *namespace*.

        Without a namespace the whole backend is wiped.  With one, only keys
        carrying that exact namespace prefix are removed; keys whose raw part
        merely contains the namespace string are left alone.
        """
        if not namespace:
            self.store.clear()
            return
        prefix = self._key_prefix(namespace)
        doomed: list[str] = []

        def _collect(_value: Optional[str], key: str) -> None:
            if key.startswith(prefix):
                doomed.append(key)

        self.store.for_each(_collect)
        for key in doomed:
            self.store.remove(key)
        logger.debug("Cleared %d entries in namespace '%s'", len(doomed), namespace)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _key_prefix(self, namespace: Optional[str]) -> str:
        if namespace:
            return f"{self.name}_{namespace}_{STORE_DISCRIMINATOR}_"
        return f"{self.name}_{STORE_DISCRIMINATOR}_"

    def _generate_key(self, key: str, namespace: Optional[str]) -> str:
        return self._key_prefix(namespace) + key

    def _calculate_expiry(self, max_age: Optional[int]) -> float:
        lifetime = max_age if max_age is not None else self.config.max_age
        if lifetime is None:
            return 0
        return self._clock() + lifetime

    def _is_expired(self, expiry: Any) -> bool:
        if not isinstance(expiry, (int, float)) or not expiry:
            return True
        return not expiry > self._clock()
