"""Canonical Pydantic models shared across csdelivery modules.

This is the single source of truth for configuration shapes. Every other
module imports from here rather than defining its own models:

* :class:`Policy` and :class:`StoreType` -- enumerations selected at
  construction time.
* :class:`PersistenceStoreConfig` -- options for
  :class:`~csdelivery.persistence.PersistenceStore`.
* :class:`RetryConfig` -- options for the retry stage of the pipeline.
* :class:`CacheOptions` -- cache policy plus the store it reads from.
* :class:`StackConfig` -- everything :func:`csdelivery.stack` accepts.

Models holding callables or caller-supplied objects (plugins, storage
backends, transports) use ``arbitrary_types_allowed``.  :class:`StackConfig`
forbids unknown keys so that a misspelled option fails at construction
instead of being silently ignored.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_AGE = 1000 * 60 * 60 * 24
"""Default time-to-live of a persisted entry: 24 hours, in milliseconds."""

DEFAULT_RETRY_LIMIT = 5
DEFAULT_RETRY_DELAY = 300


class Policy(str, enum.Enum):
    """Where a read is served from when a cache is configured.

    ``IGNORE_CACHE`` bypasses the store entirely.  The other three policies
    require :attr:`CacheOptions.persistence_store`.
    """

    IGNORE_CACHE = "IGNORE_CACHE"
    CACHE_THEN_NETWORK = "CACHE_THEN_NETWORK"
    CACHE_ELSE_NETWORK = "CACHE_ELSE_NETWORK"
    NETWORK_ELSE_CACHE = "NETWORK_ELSE_CACHE"


class StoreType(str, enum.Enum):
    """Storage backend selected by :class:`PersistenceStoreConfig`."""

    DISK = "diskStorage"
    MEMORY = "memoryStorage"
    CUSTOM = "customStorage"


class PersistenceStoreConfig(BaseModel):
    """Options for a :class:`~csdelivery.persistence.PersistenceStore`.

    Example::

        PersistenceStoreConfig(store_type="memoryStorage", max_age=60_000)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    store_type: StoreType = Field(
        default=StoreType.DISK,
        description="Backend: diskStorage, memoryStorage or customStorage",
    )
    storage: Optional[Any] = Field(
        default=None, description="Backend instance, required for customStorage"
    )
    max_age: Optional[int] = Field(
        default=DEFAULT_MAX_AGE, ge=0, description="Entry lifetime in milliseconds"
    )
    serializer: Callable[[Any], str] = json.dumps
    deserializer: Callable[[str], Any] = json.loads
    name: str = Field(default="", description="Prefix scoping every generated key")
    directory: Optional[str] = Field(
        default=None, description="Directory for diskStorage (defaults to the XDG cache dir)"
    )


class RetryConfig(BaseModel):
    """Options for the retry stage.

    ``retry_limit`` counts re-attempts after the first one, so a limit of 0
    never retries.  ``retry_delay`` and ``backoff_base`` are milliseconds.
    When ``custom_backoff`` is set it wins over both; otherwise
    ``backoff_base`` (when set) gives ``base * 2 ** (attempt - 1)``, and
    ``retry_delay`` is used as a fixed delay.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    retry_on_error: bool = True
    retry_limit: int = Field(default=DEFAULT_RETRY_LIMIT, ge=0)
    retry_delay: int = Field(default=DEFAULT_RETRY_DELAY, ge=0)
    retry_condition: Optional[Callable[[Exception], bool]] = None
    backoff_base: Optional[int] = Field(default=None, ge=0)
    custom_backoff: Optional[Callable[[int, Exception], float]] = None


class CacheOptions(BaseModel):
    """Cache policy for a stack.

    ``persistence_store`` is a :class:`~csdelivery.persistence.PersistenceStore`
    (or anything with the same ``get_item``/``set_item`` methods).  It is
    validated when the stack is built, not here, so the error can name the
    missing dependency.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    policy: Policy = Policy.IGNORE_CACHE
    persistence_store: Optional[Any] = None
    max_age: Optional[int] = Field(
        default=None, ge=0, description="Overrides the store's max_age for API responses"
    )


class StackConfig(BaseModel):
    """Everything needed to build a :class:`~csdelivery.stack.Stack`.

    ``api_key``, ``delivery_token`` and ``environment`` are required.
    Unknown keys are rejected.

    Example::

        StackConfig(
            api_key="blt123",
            delivery_token="cs456",
            environment="production",
            cache_options=CacheOptions(policy=Policy.CACHE_ELSE_NETWORK,
                                       persistence_store=store),
        )
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    api_key: str = Field(min_length=1)
    delivery_token: str = Field(min_length=1)
    environment: str = Field(min_length=1)
    region: str = "us"
    host: Optional[str] = None
    port: Optional[int] = None
    locale: Optional[str] = None
    branch: Optional[str] = None
    early_access: list[str] = Field(default_factory=list)
    live_preview: dict[str, Any] = Field(default_factory=dict)
    plugins: list[Any] = Field(default_factory=list)
    cache_options: Optional[CacheOptions] = None
    retry_on_error: bool = True
    retry_limit: int = Field(default=DEFAULT_RETRY_LIMIT, ge=0)
    retry_delay: int = Field(default=DEFAULT_RETRY_DELAY, ge=0)
    retry_condition: Optional[Callable[[Exception], bool]] = None
    backoff_base: Optional[int] = Field(default=None, ge=0)
    custom_backoff: Optional[Callable[[int, Exception], float]] = None
    timeout: float = Field(default=30.0, gt=0)
    debug: bool = False
    log_handler: Optional[Callable[[str, dict[str, Any]], None]] = None
    transport: Optional[Any] = Field(
        default=None, description="httpx async transport override, mainly for tests"
    )

    def retry_config(self) -> RetryConfig:
        """Return the retry options of this stack as a :class:`RetryConfig`."""
        return RetryConfig(
            retry_on_error=self.retry_on_error,
            retry_limit=self.retry_limit,
            retry_delay=self.retry_delay,
            retry_condition=self.retry_condition,
            backoff_base=self.backoff_base,
            custom_backoff=self.custom_backoff,
        )
