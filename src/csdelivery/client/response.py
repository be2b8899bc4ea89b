"""Response formatting bridge -- maps :class:`httpx.Response` to the CLI output.

After a command's request completes, :func:`format_api_response` writes the
status line (and whether the body came from the cache) to stderr and
renders the decoded body on stdout.
"""

from __future__ import annotations

import httpx

from csdelivery.cache import CACHE_HEADER
from csdelivery.context import extract_response_data
from csdelivery.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print *response* through the global output manager."""
    output = get_output()
    source = " (cache)" if response.headers.get(CACHE_HEADER) == "hit" else ""
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}{source}".rstrip())

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data)
