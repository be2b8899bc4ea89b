"""Tests for the csdelivery command line."""

from __future__ import annotations

import json
import sys

import httpx
import pytest

from csdelivery import __version__
from csdelivery.app import app, main
from csdelivery.exceptions import ConfigError
from csdelivery.persistence import PersistenceStore


@pytest.fixture
def env(isolated_config, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CSDELIVERY_API_KEY", "blt_api_key")
    monkeypatch.setenv("CSDELIVERY_DELIVERY_TOKEN", "cs_token")
    monkeypatch.setenv("CSDELIVERY_ENVIRONMENT", "production")
    return isolated_config


@pytest.fixture
def mock_network(monkeypatch: pytest.MonkeyPatch):
    """Route the CLI's stack through a mock transport and record requests."""
    import csdelivery.config as config_module

    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"content_types": [{"uid": "blog"}]})

    real = config_module.load_stack_config

    def patched(**options):
        return real(transport=httpx.MockTransport(handler), **options)

    monkeypatch.setattr(config_module, "load_stack_config", patched)
    return requests


def _seed_disk(entries: dict[str, str]) -> None:
    store = PersistenceStore(store_type="diskStorage")
    try:
        for namespace, value in entries.items():
            store.set_item("k", value, namespace=namespace)
    finally:
        store.store.close()


class TestGlobalOptions:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "get" in result.output
        assert "cache" in result.output


class TestGet:
    def test_prints_json_body(self, cli_runner, env, mock_network) -> None:
        result = cli_runner.invoke(app, ["--json", "--quiet", "get", "/content_types", "-P", "limit=1"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"content_types": [{"uid": "blog"}]}
        assert mock_network[0].url.params["limit"] == "1"
        assert mock_network[0].headers["api_key"] == "blt_api_key"

    def test_cache_policy_uses_disk_store(self, cli_runner, env, mock_network) -> None:
        args = ["--json", "--quiet", "get", "/content_types", "--policy", "cache_else_network"]
        first = cli_runner.invoke(app, args)
        second = cli_runner.invoke(app, args)
        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert len(mock_network) == 1
        assert json.loads(second.stdout) == {"content_types": [{"uid": "blog"}]}

    def test_bad_param(self, cli_runner, env, mock_network) -> None:
        result = cli_runner.invoke(app, ["get", "/content_types", "-P", "novalue"])
        assert result.exit_code == 2
        assert mock_network == []

    def test_missing_credentials(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["get", "/content_types"])
        assert isinstance(result.exception, ConfigError)


class TestCache:
    def test_show(self, cli_runner, isolated_config) -> None:
        _seed_disk({"blog": "a", "news": "b"})
        result = cli_runner.invoke(app, ["--plain", "cache", "show"])
        assert result.exit_code == 0, result.output
        lines = result.stdout.strip().splitlines()
        assert lines[0] == "Key\tBytes\tExpires"
        assert any(line.startswith("_blog_cs_store_py_k\t") for line in lines)
        assert any(line.startswith("_news_cs_store_py_k\t") for line in lines)

    def test_clear_namespace(self, cli_runner, isolated_config) -> None:
        _seed_disk({"blog": "a", "news": "b"})
        result = cli_runner.invoke(app, ["cache", "clear", "--namespace", "blog"])
        assert result.exit_code == 0, result.output

        store = PersistenceStore(store_type="diskStorage")
        try:
            assert store.get_item("k", namespace="blog") is None
            assert store.get_item("k", namespace="news") == "b"
        finally:
            store.store.close()

    def test_clear_all(self, cli_runner, isolated_config) -> None:
        _seed_disk({"blog": "a", "news": "b"})
        result = cli_runner.invoke(app, ["cache", "clear"])
        assert result.exit_code == 0, result.output

        store = PersistenceStore(store_type="diskStorage")
        try:
            assert len(store.store) == 0
        finally:
            store.store.close()


class TestMain:
    def test_delivery_error_exit_code(
        self, isolated_config, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        monkeypatch.setattr(sys, "argv", ["csdelivery", "--no-color", "get", "/content_types"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == ConfigError.exit_code
        assert "Invalid stack configuration" in capsys.readouterr().err
