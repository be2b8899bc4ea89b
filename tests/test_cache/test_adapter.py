"""Tests for the cache-policy adapter."""

from __future__ import annotations

import httpx
import pytest

from csdelivery.cache import CACHE_HEADER, CacheAdapter, make_cache_key, stack_identity
from csdelivery.context import RequestContext
from csdelivery.exceptions import ConfigError, ConnectionError_
from csdelivery.models import CacheOptions, Policy

URL = "https://cdn.contentstack.io/v3/content_types/blog/entries"


class FakeNetwork:
    """Send step returning queued responses or raising queued errors."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes) or [httpx.Response(200, json={"entries": ["fresh"]})]
        self.calls: list[RequestContext] = []

    async def __call__(self, ctx: RequestContext) -> httpx.Response:
        self.calls.append(ctx)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _adapter(policy: Policy, store, network: FakeNetwork, **options) -> CacheAdapter:
    return CacheAdapter(CacheOptions(policy=policy, persistence_store=store, **options), network)


def _ctx(**overrides) -> RequestContext:
    values = {"method": "GET", "url": URL, "namespace": "blog"}
    values.update(overrides)
    return RequestContext(**values)


def _seed(store, body, namespace: str = "blog") -> None:
    store.set_item(make_cache_key("GET", URL, {}), body, namespace)


# ------------------------------------------------------------------ #
# Keys and construction
# ------------------------------------------------------------------ #


class TestCacheKey:
    def test_deterministic(self) -> None:
        assert make_cache_key("get", URL, {"b": 2, "a": 1}) == make_cache_key(
            "GET", URL, {"a": 1, "b": 2}
        )

    def test_params_change_key(self) -> None:
        assert make_cache_key("GET", URL, {"limit": 1}) != make_cache_key("GET", URL, {"limit": 2})

    def test_method_changes_key(self) -> None:
        assert make_cache_key("GET", URL, None) != make_cache_key("POST", URL, None)

    def test_identity_changes_key(self) -> None:
        assert make_cache_key("GET", URL, None, {"api_key": "A"}) != make_cache_key(
            "GET", URL, None, {"api_key": "B"}
        )
        assert make_cache_key("GET", URL, None, {"api_key": "A", "branch": "main"}) != (
            make_cache_key("GET", URL, None, {"api_key": "A", "branch": "dev"})
        )

    def test_stack_identity_picks_identity_headers(self) -> None:
        headers = {
            "API_KEY": "blt1",
            "branch": "dev",
            "x-header-ea": "taxonomy",
            "access_token": "secret",
            "x-trace": "abc",
        }
        assert stack_identity(headers) == {
            "api_key": "blt1",
            "branch": "dev",
            "x-header-ea": "taxonomy",
        }


class TestConstruction:
    @pytest.mark.parametrize(
        "policy",
        [Policy.CACHE_ELSE_NETWORK, Policy.CACHE_THEN_NETWORK, Policy.NETWORK_ELSE_CACHE],
    )
    def test_missing_store_names_dependency(self, policy: Policy) -> None:
        with pytest.raises(ConfigError, match="cache_options.persistence_store"):
            CacheAdapter(CacheOptions(policy=policy), FakeNetwork())

    def test_ignore_cache_needs_no_store(self) -> None:
        adapter = CacheAdapter(CacheOptions(policy=Policy.IGNORE_CACHE), FakeNetwork())
        assert adapter.store is None


# ------------------------------------------------------------------ #
# Policies
# ------------------------------------------------------------------ #


class TestIgnoreCache:
    @pytest.mark.asyncio
    async def test_always_network(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["cached"]})
        network = FakeNetwork()
        adapter = _adapter(Policy.IGNORE_CACHE, memory_store, network)
        response = await adapter(_ctx())
        assert response.json() == {"entries": ["fresh"]}
        assert len(network.calls) == 1


class TestCacheElseNetwork:
    @pytest.mark.asyncio
    async def test_hit_makes_no_network_call(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["cached"]})
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)

        response = await adapter(_ctx())

        assert network.calls == []
        assert response.status_code == 200
        assert response.headers[CACHE_HEADER] == "hit"
        assert response.json() == {"entries": ["cached"]}

    @pytest.mark.asyncio
    async def test_miss_fetches_and_stores(self, memory_store) -> None:
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)

        first = await adapter(_ctx())
        second = await adapter(_ctx())

        assert len(network.calls) == 1
        assert CACHE_HEADER not in first.headers
        assert second.json() == {"entries": ["fresh"]}

    @pytest.mark.asyncio
    async def test_error_response_not_stored(self, memory_store) -> None:
        network = FakeNetwork(httpx.Response(500, json={"error_message": "down"}))
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)
        response = await adapter(_ctx())
        assert response.status_code == 500
        assert len(memory_store.store) == 0

    @pytest.mark.asyncio
    async def test_non_json_body_not_stored(self, memory_store) -> None:
        network = FakeNetwork(httpx.Response(200, text="<html></html>"))
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)
        await adapter(_ctx())
        assert len(memory_store.store) == 0

    @pytest.mark.asyncio
    async def test_namespaces_are_separate(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["blog"]}, namespace="blog")
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)
        response = await adapter(_ctx(namespace="news"))
        assert response.json() == {"entries": ["fresh"]}
        assert len(network.calls) == 1

    @pytest.mark.asyncio
    async def test_other_stack_identity_misses(self, memory_store) -> None:
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)
        await adapter(_ctx(headers={"api_key": "stack_a"}))
        await adapter(_ctx(headers={"api_key": "stack_b"}))
        await adapter(_ctx(headers={"api_key": "stack_a"}))
        assert len(network.calls) == 2

    @pytest.mark.asyncio
    async def test_non_get_bypasses_cache(self, memory_store) -> None:
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network)
        await adapter(_ctx(method="POST"))
        await adapter(_ctx(method="POST"))
        assert len(network.calls) == 2
        assert len(memory_store.store) == 0

    @pytest.mark.asyncio
    async def test_max_age_override(self, memory_store, clock) -> None:
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_ELSE_NETWORK, memory_store, network, max_age=10)
        await adapter(_ctx())
        clock.advance(10)
        await adapter(_ctx())
        assert len(network.calls) == 2


class TestCacheThenNetwork:
    @pytest.mark.asyncio
    async def test_hit_returns_cached_and_refreshes_once(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["cached"]})
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_THEN_NETWORK, memory_store, network)

        response = await adapter(_ctx())
        assert response.json() == {"entries": ["cached"]}

        await adapter.wait_for_refreshes()
        assert len(network.calls) == 1
        assert memory_store.get_item(make_cache_key("GET", URL, {}), "blog") == {
            "entries": ["fresh"]
        }

    @pytest.mark.asyncio
    async def test_miss_returns_network(self, memory_store) -> None:
        network = FakeNetwork()
        adapter = _adapter(Policy.CACHE_THEN_NETWORK, memory_store, network)
        response = await adapter(_ctx())
        await adapter.wait_for_refreshes()
        assert response.json() == {"entries": ["fresh"]}
        assert len(network.calls) == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_cached_value(self, memory_store, caplog) -> None:
        _seed(memory_store, {"entries": ["cached"]})
        network = FakeNetwork(ConnectionError_("offline"))
        adapter = _adapter(Policy.CACHE_THEN_NETWORK, memory_store, network)

        response = await adapter(_ctx())
        await adapter.wait_for_refreshes()

        assert response.json() == {"entries": ["cached"]}
        assert memory_store.get_item(make_cache_key("GET", URL, {}), "blog") == {
            "entries": ["cached"]
        }
        assert "Background refresh" in caplog.text


class TestNetworkElseCache:
    @pytest.mark.asyncio
    async def test_success_overwrites_store(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["stale"]})
        network = FakeNetwork()
        adapter = _adapter(Policy.NETWORK_ELSE_CACHE, memory_store, network)
        response = await adapter(_ctx())
        assert response.json() == {"entries": ["fresh"]}
        assert memory_store.get_item(make_cache_key("GET", URL, {}), "blog") == {
            "entries": ["fresh"]
        }

    @pytest.mark.asyncio
    async def test_connection_failure_serves_cache(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["cached"]})
        adapter = _adapter(
            Policy.NETWORK_ELSE_CACHE, memory_store, FakeNetwork(ConnectionError_("offline"))
        )
        response = await adapter(_ctx())
        assert response.json() == {"entries": ["cached"]}
        assert response.headers[CACHE_HEADER] == "hit"

    @pytest.mark.asyncio
    async def test_error_status_serves_cache(self, memory_store) -> None:
        _seed(memory_store, {"entries": ["cached"]})
        adapter = _adapter(
            Policy.NETWORK_ELSE_CACHE, memory_store, FakeNetwork(httpx.Response(503))
        )
        response = await adapter(_ctx())
        assert response.status_code == 200
        assert response.json() == {"entries": ["cached"]}

    @pytest.mark.asyncio
    async def test_error_status_without_cache(self, memory_store) -> None:
        adapter = _adapter(
            Policy.NETWORK_ELSE_CACHE, memory_store, FakeNetwork(httpx.Response(503))
        )
        response = await adapter(_ctx())
        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_failure_without_cache(self, memory_store) -> None:
        adapter = _adapter(
            Policy.NETWORK_ELSE_CACHE, memory_store, FakeNetwork(ConnectionError_("offline"))
        )
        with pytest.raises(ConnectionError_):
            await adapter(_ctx())
