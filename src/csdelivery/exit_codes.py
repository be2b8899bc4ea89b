"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~csdelivery.exceptions.DeliveryError` subclass.
The ``csdelivery`` console script exits with these codes so that shell
wrappers can tell failure classes apart without parsing stderr.

Example::

    $ csdelivery get /content_types
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the delivery token was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing configuration."""

EXIT_AUTH_FAILURE = 3
"""Authentication or authorisation failed."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an error status after all retries."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_PLUGIN_ERROR = 10
"""A plugin hook raised while processing a request."""
