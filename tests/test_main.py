"""
FastAPI integration tests for the location and event routes.

The reference data is injected through ``main.build_service`` so the suite
never touches the network.
"""

from __future__ import annotations

from typing import Callable

import pytest
from fastapi.testclient import TestClient

from localevents import main
from localevents.dataset import DataSnapshot
from localevents.service import LocalEvents


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #
def _build_client(monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot) -> TestClient:
    """Return a TestClient whose service answers from *snapshot*."""
    monkeypatch.setattr(
        main, "build_service", lambda: LocalEvents.from_snapshot(snapshot), raising=True
    )
    return TestClient(main.app)


@pytest.fixture
def pop_snapshot(make_snapshot: Callable[..., DataSnapshot]) -> DataSnapshot:
    return make_snapshot(headers={"x-served-by": "cache-ORD"})


# ------------------------------------------------------------------ #
# Tests
# ------------------------------------------------------------------ #
def test_primary_language() -> None:
    assert main.primary_language("en-GB,en;q=0.9") == "en-GB"
    assert main.primary_language("fr;q=0.8") == "fr"
    assert main.primary_language("*") == ""
    assert main.primary_language(None) == ""


def test_healthz(monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot) -> None:
    with _build_client(monkeypatch, snapshot) as client:
        resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.text == "ok"


def test_status(monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot) -> None:
    with _build_client(monkeypatch, snapshot) as client:
        data = client.get("/status.json").json()
    assert data["loaded"] is True
    assert data["locations"] == 4
    assert data["events"] == 3


def test_location_fast_from_pop_header(
    monkeypatch: pytest.MonkeyPatch, pop_snapshot: DataSnapshot
) -> None:
    with _build_client(monkeypatch, pop_snapshot) as client:
        resp = client.get("/location/fast.json", headers={"Accept-Language": "en-US,en;q=0.9"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["city"] == "Chicago"
    assert data["c2"] == "US"
    assert data["locationservices"] == "disabled"
    assert data["language"] == "en-US"


def test_location_fast_from_language_and_timezone(
    monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot
) -> None:
    with _build_client(monkeypatch, snapshot) as client:
        data = client.get(
            "/location/fast.json",
            params={"lang": "de-DE"},
            headers={"X-Timezone": "Europe/Berlin"},
        ).json()
    assert data["city"] == "Frankfurt"


def test_location_accurate(monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot) -> None:
    with _build_client(monkeypatch, snapshot) as client:
        ok = client.get("/location/accurate.json", params={"lat": 48.86, "lon": 2.35})
        missing = client.get("/location/accurate.json")

    assert ok.status_code == 200
    loc = ok.json()["location"]
    assert loc["city"] == "Paris"
    assert loc["latitude"] == 48.86
    assert loc["locationservices"] == "enabled"

    assert missing.status_code == 404
    assert missing.json() == {"location": None}


def test_search_events(monkeypatch: pytest.MonkeyPatch, pop_snapshot: DataSnapshot) -> None:
    with _build_client(monkeypatch, pop_snapshot) as client:
        resp = client.get("/events/search.json", params={"q": "python", "limit": 2})

    assert resp.status_code == 200
    data = resp.json()
    assert data["accurate"] is False
    assert data["location"]["city"] == "Chicago"
    assert [e["name"] for e in data["events"]] == ["Intro to Python", "Morning Yoga"]
    assert data["events"][0]["unit"] == "mi"


def test_search_events_with_device_fix(
    monkeypatch: pytest.MonkeyPatch, pop_snapshot: DataSnapshot
) -> None:
    with _build_client(monkeypatch, pop_snapshot) as client:
        data = client.get(
            "/events/search.json", params={"lat": 51.5, "lon": -0.12, "limit": 1}
        ).json()

    assert data["accurate"] is True
    assert data["location"]["city"] == "London"
    assert [e["name"] for e in data["events"]] == ["Intro to Python"]


def test_search_rejects_bad_limit(monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot) -> None:
    with _build_client(monkeypatch, snapshot) as client:
        assert client.get("/events/search.json", params={"limit": 0}).status_code == 422


def test_closest_events(monkeypatch: pytest.MonkeyPatch, pop_snapshot: DataSnapshot) -> None:
    with _build_client(monkeypatch, pop_snapshot) as client:
        data = client.get("/events/closest.json").json()

    assert [e["name"] for e in data["events"]] == [
        "Morning Yoga",
        "Intro to Python",
        "Kubernetes Deep Dive",
    ]


def test_unexpected_error_returns_generic_message(
    monkeypatch: pytest.MonkeyPatch, snapshot: DataSnapshot
) -> None:
    async def _boom(*_a, **_k):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(
        main, "build_service", lambda: LocalEvents.from_snapshot(snapshot), raising=True
    )
    with TestClient(main.app, raise_server_exceptions=False) as client:
        monkeypatch.setattr(client.app.state.local_events, "closest_events", _boom)
        resp = client.get("/events/closest.json")

    assert resp.status_code == 500
    assert "kaboom" not in resp.text
    assert "problem determining your location" in resp.json()["detail"]
