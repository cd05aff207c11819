"""
service.py
~~~~~~~~~~
:class:`LocalEvents` – the one object callers talk to.

* Construction inside a running event loop starts the load right away;
  otherwise the first :meth:`LocalEvents.wait_for_load` starts it.
* Every public coroutine awaits :meth:`wait_for_load` first, and all
  callers share the same in-flight load.
* A failed load is logged and reported as ``False``; the instance then
  answers from empty collections instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .constants import (
    DEFAULT_EVENTS_URL,
    DEFAULT_LIMIT,
    DEFAULT_LOCATIONS_URL,
    FETCH_TIMEOUT_S,
    GEOLOCATION_TIMEOUT_S,
    USER_AGENT,
)
from .dataset import EMPTY_SNAPSHOT, DataSnapshot, load_snapshot
from .device import ClientContext
from .errors import DatasetLoadError
from .geo import haversine_km
from .models import LocationRecord, RankedEvent, ResolvedLocation
from .resolver import LocationResolver
from .search import EventSearchEngine

LOG = logging.getLogger("local_events")


class LocalEvents:
    """Location cascade + event search over one lazily loaded snapshot."""

    def __init__(
        self,
        locations_url: str = DEFAULT_LOCATIONS_URL,
        events_url: str = DEFAULT_EVENTS_URL,
        *,
        client: httpx.AsyncClient | None = None,
        geolocation_timeout: float = GEOLOCATION_TIMEOUT_S,
        snapshot: DataSnapshot | None = None,
    ) -> None:
        self.locations_url = locations_url
        self.events_url = events_url
        self._client = client
        self._geolocation_timeout = geolocation_timeout
        self._load_task: asyncio.Task[bool] | None = None
        self._loaded: bool | None = None
        self._bind(EMPTY_SNAPSHOT if snapshot is None else snapshot)

        if snapshot is not None:
            self._loaded = snapshot.loaded
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass  # started by the first wait_for_load()
        else:
            self._start_load()

    @classmethod
    def from_snapshot(
        cls,
        snapshot: DataSnapshot,
        *,
        geolocation_timeout: float = GEOLOCATION_TIMEOUT_S,
    ) -> "LocalEvents":
        """Build an instance around already loaded data (no fetching)."""
        return cls(
            "", "", geolocation_timeout=geolocation_timeout, snapshot=snapshot
        )

    # ── Loading ─────────────────────────────────────────────────────────
    def _bind(self, snapshot: DataSnapshot) -> None:
        self._snapshot = snapshot
        self._resolver = LocationResolver(
            snapshot, geolocation_timeout=self._geolocation_timeout
        )
        self._engine = EventSearchEngine(snapshot.events)

    def _start_load(self) -> asyncio.Task[bool]:
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._initialize())
        return self._load_task

    async def _initialize(self) -> bool:
        LOG.info("Initializing LocalEvents…")
        try:
            if self._client is not None:
                snapshot = await load_snapshot(
                    self._client, self.locations_url, self.events_url
                )
            else:
                async with httpx.AsyncClient(
                    timeout=FETCH_TIMEOUT_S, headers={"User-Agent": USER_AGENT}
                ) as cli:
                    snapshot = await load_snapshot(
                        cli, self.locations_url, self.events_url
                    )
        except DatasetLoadError as exc:
            LOG.error("Failed to initialize LocalEvents: %s", exc)
            self._loaded = False
            return False

        self._bind(snapshot)
        self._loaded = True
        return True

    async def wait_for_load(self) -> bool:
        """Wait for the (single, shared) load; ``True`` when it succeeded."""
        if self._loaded is not None:
            return self._loaded
        # shield: a cancelled waiter must not cancel the shared load
        return await asyncio.shield(self._start_load())

    @property
    def snapshot(self) -> DataSnapshot:
        return self._snapshot

    # ── Geometry ────────────────────────────────────────────────────────
    @staticmethod
    def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        return haversine_km(lat1, lon1, lat2, lon2)

    async def find_nearest_location(
        self, latitude: float, longitude: float
    ) -> LocationRecord | None:
        await self.wait_for_load()
        return self._resolver.find_nearest(latitude, longitude)

    # ── Location ────────────────────────────────────────────────────────
    async def location_fast(self, ctx: ClientContext | None = None) -> ResolvedLocation:
        await self.wait_for_load()
        return self._resolver.location_fast(ctx or ClientContext())

    async def location_accurate(
        self, ctx: ClientContext | None = None
    ) -> ResolvedLocation | None:
        await self.wait_for_load()
        return await self._resolver.location_accurate(ctx or ClientContext())

    # ── Events ──────────────────────────────────────────────────────────
    async def search_events(
        self,
        query: str,
        user_location: ResolvedLocation,
        limit: int = DEFAULT_LIMIT,
    ) -> list[RankedEvent]:
        await self.wait_for_load()
        return self._engine.search(query, user_location, limit)

    async def closest_events(
        self,
        limit: int = DEFAULT_LIMIT,
        ctx: ClientContext | None = None,
    ) -> list[RankedEvent]:
        location = await self.location_fast(ctx)
        return await self.search_events("", location, limit)

    async def nearby(
        self,
        query: str = "",
        limit: int = DEFAULT_LIMIT,
        ctx: ClientContext | None = None,
    ) -> dict[str, Any]:
        """
        Fast location → events, then refine with the device fix.

        A successful accurate location replaces the fast one; events are
        re-ranked against it only when no query was given (a query keeps
        its fast-location ranking).
        """
        ctx = ctx or ClientContext()
        location = await self.location_fast(ctx)
        events = await self.search_events(query, location, limit)

        accurate = await self.location_accurate(ctx)
        if accurate is not None:
            location = accurate
            if not query:
                events = await self.search_events("", accurate, limit)

        return {"location": location, "events": events, "accurate": accurate is not None}


__all__ = ["LocalEvents"]
