"""Link-header pagination for REST collection endpoints.

Both GitLab and GitHub advertise the next page of a collection through an
RFC 8288 ``Link`` header (``<url>; rel="next"``). ``requests`` already parses
that header into ``Response.links`` so the loop below only has to follow it.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import requests

from .errors import APIError, DecodeError, NetworkError, ReadError

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_PAGES = 1000


def _next_url(response: requests.Response) -> str | None:
    nxt = response.links.get("next")
    if not nxt:
        return None
    url = nxt.get("url")
    return url or None


def paginate(
    session: requests.Session,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, Any] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[bytes]:
    """Fetch ``url`` and every page linked through ``rel="next"``.

    Returns one raw body per fetched page, first page first. ``params`` are
    only sent with the first request because next links already carry the
    query string. Any transport or read failure raises and discards the
    pages fetched so far; HTTP status codes are left to the caller.
    """
    pages: list[bytes] = []
    next_url: str | None = url
    next_params: Mapping[str, Any] | None = params
    while next_url is not None:
        if len(pages) >= max_pages:
            raise NetworkError(f"pagination exceeded {max_pages} pages starting at {url}")
        try:
            response = session.request(
                "GET",
                next_url,
                params=next_params,
                headers=headers,
                timeout=timeout,
            )
        except (
            requests.exceptions.ChunkedEncodingError,
            requests.exceptions.ContentDecodingError,
        ) as exc:
            raise ReadError(f"GET {next_url} body could not be read: {exc}") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"GET {next_url} failed: {exc}") from exc
        try:
            body = response.content
        except requests.RequestException as exc:
            raise ReadError(f"GET {next_url} body could not be read: {exc}") from exc
        pages.append(body or b"")
        next_url = _next_url(response)
        next_params = None
    return pages


def decode_pages(pages: list[bytes]) -> list[dict[str, Any]]:
    """Decode JSON array pages into one flat list of records.

    Empty bodies contribute nothing. An object body holding a ``message``
    key is the providers' error envelope and raises :class:`APIError`.
    """
    records: list[dict[str, Any]] = []
    for index, body in enumerate(pages):
        if not body or not body.strip():
            continue
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise DecodeError(f"page {index + 1} is not valid JSON: {exc}") from exc
        if isinstance(data, dict):
            if "message" in data:
                raise APIError(
                    f"API returned error: {data.get('message')}",
                    response_text=body.decode("utf-8", errors="replace"),
                )
            raise DecodeError(f"page {index + 1} is a JSON object, expected an array")
        if not isinstance(data, list):
            raise DecodeError(f"page {index + 1} is not a JSON array")
        records.extend(entry for entry in data if isinstance(entry, dict))
    return records


__all__ = ["paginate", "decode_pages", "DEFAULT_TIMEOUT"]
