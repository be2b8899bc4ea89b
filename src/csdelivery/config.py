"""Configuration helpers: XDG cache paths and environment resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.csdelivery/`` on macOS and Windows. See :func:`get_cache_dir`.
* **Environment resolution** -- :func:`load_stack_config` merges explicit
  keyword arguments with ``CSDELIVERY_*`` environment variables into a
  validated :class:`~csdelivery.models.StackConfig`.  Explicit arguments
  always win over the environment.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from csdelivery.exceptions import ConfigError
from csdelivery.models import StackConfig

_APP_NAME = "csdelivery"

ENV_PREFIX = "CSDELIVERY_"

_ENV_FIELDS = (
    "api_key",
    "delivery_token",
    "environment",
    "region",
    "host",
    "branch",
    "locale",
)


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the disk-backed persistence store.  Its contents can be deleted
    at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/csdelivery/`` (default ``~/.cache/csdelivery/``).
    On macOS/Windows: ``~/.csdelivery/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Stack configuration ---


def validation_message(exc: ValidationError) -> str:
    """Flatten a Pydantic error into ``field: reason`` pairs naming each field."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def build_stack_config(options: dict[str, Any]) -> StackConfig:
    """Validate *options* into a :class:`StackConfig`.

    Raises:
        ConfigError: If a required option is missing, an option has the
            wrong type, or an option is not recognised.  The message names
            every offending field.
    """
    try:
        return StackConfig(**options)
    except ValidationError as exc:
        raise ConfigError(f"Invalid stack configuration: {validation_message(exc)}") from None


def env_overrides() -> dict[str, str]:
    """Return the stack options set through ``CSDELIVERY_*`` environment variables."""
    values: dict[str, str] = {}
    for field_name in _ENV_FIELDS:
        value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}", "")
        if value:
            values[field_name] = value
    return values


def load_stack_config(**options: Any) -> StackConfig:
    """Build a :class:`StackConfig` from the environment plus explicit *options*.

    Precedence (highest first):

    1. Keyword arguments passed to this function (``None`` values are ignored).
    2. ``CSDELIVERY_API_KEY``, ``CSDELIVERY_DELIVERY_TOKEN``,
       ``CSDELIVERY_ENVIRONMENT``, ``CSDELIVERY_REGION``, ``CSDELIVERY_HOST``,
       ``CSDELIVERY_BRANCH``, ``CSDELIVERY_LOCALE``.
    3. Model defaults.

    Raises:
        ConfigError: If the merged options do not form a valid configuration.
    """
    merged: dict[str, Any] = env_overrides()
    merged.update({k: v for k, v in options.items() if v is not None})
    return build_stack_config(merged)
