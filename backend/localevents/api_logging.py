"""
api_logging.py
~~~~~~~~~~~~~~
Thin wrapper that prints **one concise log line** per outbound HTTP request
made while loading the reference data.

Usage example
-------------
>>> from .api_logging import logged_request_async
>>> async with httpx.AsyncClient() as cli:
...     resp = await logged_request_async(cli, "get", "https://example.org/x.json")
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

LOG = logging.getLogger("extapi")


async def logged_request_async(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *args: Any,
    raise_for_status: bool = True,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one request on *client* **and** emit a single log line.

    Parameters
    ----------
    client:
        ``httpx.AsyncClient`` (or anything exposing the same coroutine verbs).
    method:
        HTTP verb – ``"get"``, ``"head"`` … in either case.
    url:
        Absolute URL.
    raise_for_status:
        *True* ⇒ any 4xx/5xx is re-raised as :class:`httpx.HTTPStatusError`
        after it has been logged. Reference data is useless when missing,
        so unlike a per-item probe a 404 counts as a failure here.
        *False* ⇒ never raise; the caller decides.

    Returns
    -------
    httpx.Response
        Raw response so the caller can inspect status / JSON / headers.
    """
    verb = method.upper()
    t0 = time.perf_counter()
    try:
        response = await getattr(client, method.lower())(url, *args, **kwargs)
    except Exception as exc:  # network error before we get a response
        latency_ms = (time.perf_counter() - t0) * 1000.0
        LOG.warning("FAIL %s %s %.0f ms %s", verb, url, latency_ms, exc)
        raise

    latency_ms = (time.perf_counter() - t0) * 1000.0
    code = response.status_code
    size = len(response.content)

    if code >= 400:
        LOG.warning("%s %s → %s (%.0f ms)", verb, url, code, latency_ms)
    else:
        LOG.info("%s %s → %s, %d bytes (%.0f ms)", verb, url, code, size, latency_ms)

    if raise_for_status and code >= 400:
        response.raise_for_status()

    return response


__all__ = ["logged_request_async"]
