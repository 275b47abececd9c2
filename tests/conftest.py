"""Pytest configuration for milesync tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install, and provides HTTP doubles returning
real ``requests.Response`` objects so header parsing (``Response.links``)
behaves exactly as in production.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

import pytest
import requests

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def build_response(
    status: int = 200,
    payload: Any = None,
    *,
    link: str | None = None,
    url: str = "https://example.test/",
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if payload is None:
        body = b""
    elif isinstance(payload, bytes):
        body = payload
    else:
        body = json.dumps(payload).encode("utf-8")
    resp._content = body
    resp.encoding = "utf-8"
    resp.headers["Content-Type"] = "application/json"
    if link:
        resp.headers["Link"] = link
    resp.url = url
    return resp


class FakeSession:
    """Session double serving queued responses (or raising queued exceptions)."""

    def __init__(self, responses: list[Any] | None = None):
        self._responses = list(responses or [])
        self.request_log: list[dict[str, Any]] = []
        self.headers: dict[str, str] = {}
        self.closed = False

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Any = None,
        data: Any = None,
        json: Any = None,
        headers: Any = None,
        timeout: float | None = None,
    ) -> requests.Response:
        self.request_log.append(
            {
                "method": method,
                "url": url,
                "params": dict(params) if params else None,
                "data": dict(data) if data else None,
                "json": json,
                "headers": dict(headers or {}),
                "timeout": timeout,
            }
        )
        if not self._responses:
            raise AssertionError(f"No response queued for {method} {url}")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers bound to streams of earlier tests."""
    yield
    pkg_logger = logging.getLogger("milesync")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def fake_session():
    return FakeSession


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        _TEST_DURATIONS.append((item.nodeid, time.perf_counter() - start))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
