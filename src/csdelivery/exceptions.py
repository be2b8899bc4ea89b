"""Exception hierarchy for csdelivery.

All exceptions inherit from :class:`DeliveryError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`csdelivery.exit_codes`, plus optional request metadata
(``status_code``, ``response``, ``attempts``) filled in by the request
pipeline.

Subclass hierarchy::

    DeliveryError (exit 1)
    +-- ConfigError          (exit 2)
    |   +-- StorageConfigError (also a TypeError)
    +-- AuthError            (exit 3)
    +-- NotFoundError        (exit 4)
    +-- ServerError          (exit 5)
    |   +-- RateLimitError
    +-- ConnectionError_     (exit 6)
    +-- PluginError          (exit 10)

Configuration errors are raised while a stack is being built and are
never retried.  Request errors are raised by the pipeline after the retry
budget is spent; ``attempts`` then holds the total number of attempts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from csdelivery.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PLUGIN_ERROR,
    EXIT_SERVER_ERROR,
)

if TYPE_CHECKING:
    import httpx


class DeliveryError(Exception):
    """Base exception for all csdelivery errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
        status_code: HTTP status of the failed response, when there was one.
        response: The failed :class:`httpx.Response`, when there was one.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        status_code: int | None = None,
        response: Optional[httpx.Response] = None,
    ):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        self.status_code = status_code
        self.response = response
        self.attempts: int | None = None


class ConfigError(DeliveryError):
    """Raised when a stack, store, or cache is built with missing or invalid options."""

    exit_code = EXIT_INVALID_USAGE


class StorageConfigError(ConfigError, TypeError):
    """Raised when ``store_type="customStorage"`` is used without a ``storage`` object."""


class AuthError(DeliveryError):
    """Raised when the API rejects the API key or delivery token (HTTP 401/403)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(DeliveryError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(DeliveryError):
    """Raised for any other HTTP error status returned by the API."""

    exit_code = EXIT_SERVER_ERROR


class RateLimitError(ServerError):
    """Raised when the API returns HTTP 429 (too many requests)."""


class ConnectionError_(DeliveryError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class PluginError(DeliveryError):
    """Raised when a plugin hook fails while processing a request."""

    exit_code = EXIT_PLUGIN_ERROR
