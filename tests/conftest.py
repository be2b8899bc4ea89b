"""Shared test fixtures for csdelivery.

Provides a controllable millisecond clock and factories for stores and
stacks backed by an httpx mock transport.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from csdelivery.output import reset_output
from csdelivery.persistence import PersistenceStore
from csdelivery.stack import Stack, stack


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test."""
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock and store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> PersistenceStore:
    """An in-memory store with a 1 second lifetime and a fake clock."""
    return PersistenceStore(store_type="memoryStorage", max_age=1000, clock=clock)


# ---------------------------------------------------------------------------
# Stack fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_stack() -> Callable[..., Stack]:
    """Factory building a stack whose network is a handler function.

    Retries default to no delay so tests never sleep.
    """

    def _make(handler: Callable[[httpx.Request], Any], **options: Any) -> Stack:
        defaults: dict[str, Any] = {
            "api_key": "blt_api_key",
            "delivery_token": "cs_delivery_token",
            "environment": "production",
            "retry_delay": 0,
            "transport": httpx.MockTransport(handler),
        }
        defaults.update(options)
        return stack(**defaults)

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CACHE_HOME at tmp_path and clear CSDELIVERY_* variables."""
    monkeypatch.setattr("csdelivery.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for var in [
        "CSDELIVERY_API_KEY",
        "CSDELIVERY_DELIVERY_TOKEN",
        "CSDELIVERY_ENVIRONMENT",
        "CSDELIVERY_REGION",
        "CSDELIVERY_HOST",
        "CSDELIVERY_BRANCH",
        "CSDELIVERY_LOCALE",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
