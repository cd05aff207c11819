"""
dataset.py
~~~~~~~~~~
Fetch and normalise the two reference collections – the **location
dataset** (points-of-presence / cities) and the **event catalog** – and
capture the response headers of the dataset fetch.

The result is one immutable :class:`DataSnapshot` which the resolver and
the search engine share by reference.

Public helpers
--------------
    load_snapshot(client, locations_url, events_url) -> DataSnapshot
        Raises :class:`~localevents.errors.DatasetLoadError` on any network,
        HTTP or payload problem; the caller decides how to degrade.
    parse_locations(payload) / parse_events(payload)
        Normalise decoded JSON into record tuples.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Final, Mapping, TypeVar

import httpx
from dateutil import tz

from .api_logging import logged_request_async
from .errors import DatasetLoadError
from .models import EventRecord, LocationRecord

UTC: Final = tz.UTC
LOG = logging.getLogger("dataset")

R = TypeVar("R", LocationRecord, EventRecord)


@dataclass(frozen=True)
class DataSnapshot:
    """Everything the core reads, frozen at load time."""

    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    locations: tuple[LocationRecord, ...] = ()
    events: tuple[EventRecord, ...] = ()
    loaded: bool = False
    loaded_at: dt.datetime | None = None


EMPTY_SNAPSHOT: Final = DataSnapshot()


def snapshot_headers(headers: httpx.Headers | Mapping[str, str]) -> Mapping[str, str]:
    """Return a read-only ``{lower-cased name: value}`` copy of *headers*."""
    return MappingProxyType({str(k).lower(): str(v) for k, v in headers.items()})


def _parse_records(
    payload: Any,
    build: Callable[[Mapping[str, Any]], R],
    kind: str,
) -> tuple[R, ...]:
    if not isinstance(payload, list):
        raise DatasetLoadError(
            f"{kind} payload must be a JSON array, got {type(payload).__name__}"
        )

    records: list[R] = []
    for idx, raw in enumerate(payload):
        if not isinstance(raw, Mapping):
            LOG.warning("[%s] entry %d is not an object – skipped", kind, idx)
            continue
        try:
            records.append(build(raw))
        except (KeyError, TypeError, ValueError) as exc:
            LOG.warning("[%s] entry %d has no usable coordinates (%s) – skipped", kind, idx, exc)
    return tuple(records)


def parse_locations(payload: Any) -> tuple[LocationRecord, ...]:
    """Normalise the decoded location dataset."""
    return _parse_records(payload, LocationRecord.from_json, "locations")


def parse_events(payload: Any) -> tuple[EventRecord, ...]:
    """Normalise the decoded event catalog."""
    return _parse_records(payload, EventRecord.from_json, "events")


async def load_snapshot(
    client: httpx.AsyncClient,
    locations_url: str,
    events_url: str,
) -> DataSnapshot:
    """
    Fetch both collections concurrently and build a :class:`DataSnapshot`.

    Both requests always run to completion (``return_exceptions=True``) so a
    failure on one side never leaves the other in flight.
    """
    loc_resp, ev_resp = await asyncio.gather(
        logged_request_async(client, "get", locations_url),
        logged_request_async(client, "get", events_url),
        return_exceptions=True,
    )
    for resp in (loc_resp, ev_resp):
        if isinstance(resp, BaseException):
            raise DatasetLoadError(str(resp) or type(resp).__name__) from resp

    headers = snapshot_headers(loc_resp.headers)
    LOG.debug("Response headers stored: %s", dict(headers))

    try:
        locations = parse_locations(loc_resp.json())
        events = parse_events(ev_resp.json())
    except ValueError as exc:  # JSONDecodeError is a ValueError
        raise DatasetLoadError(f"malformed JSON: {exc}") from exc

    LOG.info("Loaded %d locations and %d events", len(locations), len(events))
    return DataSnapshot(
        headers=headers,
        locations=locations,
        events=events,
        loaded=True,
        loaded_at=dt.datetime.now(UTC),
    )


__all__ = [
    "DataSnapshot",
    "EMPTY_SNAPSHOT",
    "load_snapshot",
    "parse_events",
    "parse_locations",
    "snapshot_headers",
]
