"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

Reference data is built in memory (no network) through the same
normalisers the loader uses, so fixtures exercise ``parse_locations`` /
``parse_events`` as a side effect.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from localevents.dataset import DataSnapshot, parse_events, parse_locations, snapshot_headers


LOCATIONS_JSON: list[dict[str, Any]] = [
    {
        "iata": "ORD",
        "latitude": 41.9,
        "longitude": -87.6,
        "country": "United States",
        "c2": "US",
        "c3": "USA",
        "state": "Illinois",
        "city": "Chicago",
        "timezone": "America/Chicago",
    },
    {
        "iata": "LHR",
        "latitude": 51.47,
        "longitude": -0.45,
        "country": "United Kingdom",
        "c2": "GB",
        "c3": "GBR",
        "state": "England",
        "city": "London",
        "timezone": "Europe/London",
    },
    {
        "iata": "CDG",
        "latitude": 49.01,
        "longitude": 2.55,
        "country": "France",
        "c2": "FR",
        "c3": "FRA",
        "state": "Île-de-France",
        "city": "Paris",
        "timezone": "Europe/Paris",
    },
    {
        "iata": "FRA",
        "latitude": 50.03,
        "longitude": 8.57,
        "country": "Germany",
        "c2": "DE",
        "c3": "DEU",
        "state": "Hesse",
        "city": "Frankfurt",
        "timezone": "Europe/Berlin",
    },
]

EVENTS_JSON: list[dict[str, Any]] = [
    {
        "name": "Morning Yoga",
        "type": "Wellness",
        "latitude": 41.88,
        "longitude": -87.63,
        "address": "1 Loop Plaza, Chicago",
        "start": "2026-11-02T08:00",
    },
    {
        "name": "Intro to Python",
        "type": "Workshop",
        "latitude": 51.5,
        "longitude": -0.12,
        "address": "10 Strand, London",
        "start": "2026-11-03T18:00",
    },
    {
        "name": "Kubernetes Deep Dive",
        "type": "Workshop",
        "latitude": 48.86,
        "longitude": 2.35,
        "address": "Rue de Rivoli, Paris",
        "start": "2026-11-04T09:30",
    },
]


@pytest.fixture
def make_snapshot() -> Callable[..., DataSnapshot]:
    """Factory: ``make_snapshot(headers={...}, locations=[...], events=[...])``."""

    def _make(
        headers: dict[str, str] | None = None,
        locations: list[dict[str, Any]] | None = None,
        events: list[dict[str, Any]] | None = None,
    ) -> DataSnapshot:
        return DataSnapshot(
            headers=snapshot_headers(headers or {}),
            locations=parse_locations(LOCATIONS_JSON if locations is None else locations),
            events=parse_events(EVENTS_JSON if events is None else events),
            loaded=True,
        )

    return _make


@pytest.fixture
def snapshot(make_snapshot: Callable[..., DataSnapshot]) -> DataSnapshot:
    """Default snapshot – four locations, three events, no headers."""
    return make_snapshot()
