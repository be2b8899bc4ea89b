"""Typer application for the ``csdelivery`` console script.

A small maintenance CLI over the library:

* ``csdelivery get PATH`` -- read a path through a stack configured from
  ``CSDELIVERY_*`` environment variables, using the disk-backed
  persistence store and the chosen cache policy.
* ``csdelivery cache show`` / ``csdelivery cache clear`` -- inspect and
  wipe the disk store.

:class:`~csdelivery.exceptions.DeliveryError` instances exit with their
``exit_code``; anything else exits with :data:`EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

import typer

from csdelivery import __version__
from csdelivery.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="csdelivery",
    help="Query the content delivery API through the csdelivery pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
cache_app = typer.Typer(help="Inspect or clear the persistent cache.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"csdelivery {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Install the global output manager and logging level from the flags."""
    from csdelivery.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)


def _parse_params(pairs: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--param")
        params[key] = value
    return params


def _open_store() -> Any:
    from csdelivery.persistence import PersistenceStore

    return PersistenceStore(store_type="diskStorage")


@app.command("get")
def get_command(
    path: str = typer.Argument(..., help="Path below /v3, e.g. /content_types."),
    param: list[str] = typer.Option([], "--param", "-P", help="Query parameter KEY=VALUE."),
    policy: str = typer.Option("IGNORE_CACHE", "--policy", help="Cache policy."),
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Cache namespace."),
    retry_limit: Optional[int] = typer.Option(None, "--retry-limit", min=0, help="Maximum retries."),
) -> None:
    """Fetch PATH and print the response body."""
    from csdelivery.client.response import format_api_response
    from csdelivery.config import load_stack_config
    from csdelivery.stack import Stack

    params = _parse_params(param)

    async def _run(config: Any) -> Any:
        async with Stack(config) as s:
            return await s.request("GET", path, params=params, namespace=namespace)

    store = _open_store()
    try:
        config = load_stack_config(
            cache_options={"policy": policy.upper(), "persistence_store": store},
            retry_limit=retry_limit,
        )
        response = asyncio.run(_run(config))
    finally:
        store.store.close()
    format_api_response(response)


@cache_app.command("show")
def cache_show() -> None:
    """List the entries held in the persistent cache."""
    from csdelivery.output import get_output

    store = _open_store()
    rows: list[list[str]] = []

    def _visit(value: Optional[str], key: str) -> None:
        try:
            expiry = json.loads(value or "{}").get("expiry") or 0
        except (ValueError, AttributeError):
            expiry = 0
        expires = (
            datetime.fromtimestamp(expiry / 1000, tz=timezone.utc).isoformat() if expiry else "-"
        )
        rows.append([key, str(len(value or "")), expires])

    try:
        store.store.for_each(_visit)
    finally:
        store.store.close()
    get_output().print_table(["Key", "Bytes", "Expires"], sorted(rows), title="Cache entries")


@cache_app.command("clear")
def cache_clear(
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Only clear this namespace."),
) -> None:
    """Delete cached entries."""
    from csdelivery.output import get_output

    store = _open_store()
    try:
        store.clear(namespace)
    finally:
        store.store.close()
    scope = f"namespace '{namespace}'" if namespace else "all namespaces"
    get_output().success(f"Cleared cache for {scope}")


def main() -> None:
    """Entry point of the ``csdelivery`` console script."""
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from csdelivery.exceptions import DeliveryError
        from csdelivery.output import get_output

        if isinstance(exc, DeliveryError):
            get_output().error(str(exc))
            sys.exit(exc.exit_code)
        get_output().error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
