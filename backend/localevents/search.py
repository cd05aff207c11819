"""
search.py
~~~~~~~~~
Rank events against a user location and a free-text query.

Rules
-----
* Query → lower-case tokens split on whitespace/commas.
* No tokens ⇒ every event scores 1 (pure distance order).
  Otherwise score = number of tokens found in "name type address".
* Distances in miles for the non-metric countries (US, GB), else km.
* Sort by score (desc), then distance (asc); keep the first *limit*.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict
from typing import Final, Mapping, Sequence

from .constants import DEFAULT_LIMIT, NON_METRIC_COUNTRIES
from .geo import haversine_km, km_to_miles
from .models import EventRecord, RankedEvent

LOG = logging.getLogger("event_search")

TOKEN_SPLIT_RE: Final = re.compile(r"[\s,]+")


def tokenize(query: str) -> list[str]:
    """``"Yoga, Chicago "`` → ``["yoga", "chicago"]``."""
    return [t for t in TOKEN_SPLIT_RE.split((query or "").lower()) if t]


def score_event(event: EventRecord, tokens: Sequence[str]) -> int:
    """Count how many *tokens* occur in the event's searchable text."""
    if not tokens:
        return 1
    haystack = event.searchable_text()
    return sum(1 for t in tokens if t in haystack)


def uses_miles(user_location: Mapping[str, object]) -> bool:
    return user_location.get("c2") in NON_METRIC_COUNTRIES


class EventSearchEngine:
    """Scores and orders a fixed, read-only event catalog."""

    def __init__(self, events: Sequence[EventRecord]) -> None:
        self._events = tuple(events)

    def __len__(self) -> int:
        return len(self._events)

    def search(
        self,
        query: str,
        user_location: Mapping[str, object],
        limit: int = DEFAULT_LIMIT,
    ) -> list[RankedEvent]:
        """
        Return at most *limit* events, best first.

        A *user_location* without coordinates yields ``distance=None`` for
        every event; ordering then falls back to score only (stable).
        """
        if limit <= 0:
            return []

        tokens = tokenize(query)
        miles = uses_miles(user_location)
        unit = "mi" if miles else "km"
        lat, lon = user_location.get("latitude"), user_location.get("longitude")
        has_origin = lat is not None and lon is not None

        ranked: list[RankedEvent] = []
        for event in self._events:
            distance: float | None = None
            if has_origin:
                km = haversine_km(float(lat), float(lon), event.latitude, event.longitude)  # type: ignore[arg-type]
                distance = km_to_miles(km) if miles else km
            ranked.append(
                RankedEvent(
                    **asdict(event),
                    distance=distance,
                    unit=unit,  # type: ignore[typeddict-item]
                    score=score_event(event, tokens),
                )
            )

        # stable: full ties keep catalog order
        ranked.sort(key=lambda ev: (-ev["score"], ev["distance"] if has_origin else 0.0))
        LOG.debug("Search %r (%d tokens) ranked %d events", query, len(tokens), len(ranked))
        return ranked[:limit]


__all__ = ["EventSearchEngine", "score_event", "tokenize", "uses_miles"]
