"""
tests/test_api_logging.py
~~~~~~~~~~~~~~~~~~~~~~~~~
Validate `api_logging.logged_request_async()` for the main branches:
HTTP 200, HTTP 404, HTTP 500 and a transport failure.

A *toy* client returns a pre-canned ``httpx.Response`` tied to a dummy
``httpx.Request`` so that `raise_for_status()` raises the right type.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import pytest

from localevents.api_logging import logged_request_async


class _ToyAsyncClient:
    """Minimal async stand-in for ``httpx.AsyncClient``."""

    def __init__(self, response: httpx.Response | None = None, exc: Exception | None = None) -> None:
        self._resp = response
        self._exc = exc

    async def get(self, url: str, *a: Any, **k: Any) -> httpx.Response:
        if self._exc is not None:
            raise self._exc
        assert self._resp is not None
        return self._resp


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, expect_raise, expect_level",
    [
        (200, False, logging.INFO),
        (404, True, logging.WARNING),
        (500, True, logging.WARNING),
    ],
)
async def test_logged_request_async_levels(
    caplog: pytest.LogCaptureFixture,
    status: int,
    expect_raise: bool,
    expect_level: int,
) -> None:
    """
    * 200  → INFO, no exception.
    * 4xx/5xx → WARNING and *raises* – reference data must exist.
    """
    caplog.set_level(logging.DEBUG, logger="extapi")

    dummy_req = httpx.Request("GET", "https://x.test/locations.json")
    resp = httpx.Response(status_code=status, content=b"[]", request=dummy_req)
    toy = _ToyAsyncClient(resp)

    if expect_raise:
        with pytest.raises(httpx.HTTPStatusError):
            await logged_request_async(toy, "get", "https://x.test/locations.json")
    else:
        await logged_request_async(toy, "get", "https://x.test/locations.json")

    # exactly one log record should have been emitted
    (rec,) = caplog.records
    assert rec.levelno == expect_level


@pytest.mark.asyncio
async def test_logged_request_async_no_raise_option(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="extapi")
    dummy_req = httpx.Request("GET", "https://x.test/missing.json")
    resp = httpx.Response(status_code=404, content=b"", request=dummy_req)

    out = await logged_request_async(
        _ToyAsyncClient(resp), "GET", "https://x.test/missing.json", raise_for_status=False
    )
    assert out.status_code == 404


@pytest.mark.asyncio
async def test_logged_request_async_transport_failure(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="extapi")
    toy = _ToyAsyncClient(exc=httpx.ConnectError("connection refused"))

    with pytest.raises(httpx.ConnectError):
        await logged_request_async(toy, "get", "https://x.test/locations.json")

    (rec,) = caplog.records
    assert rec.levelno == logging.WARNING
    assert rec.getMessage().startswith("FAIL GET")
