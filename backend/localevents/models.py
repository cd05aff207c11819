"""
models.py
~~~~~~~~~
Record shapes shared by the loader, the resolver and the search engine.

* Reference data (:class:`LocationRecord`, :class:`EventRecord`) is kept in
  frozen dataclasses – it never changes after load.
* Results handed to the presentation layer (:class:`ResolvedLocation`,
  :class:`RankedEvent`) are plain ``TypedDict`` mappings so they serialise
  straight to JSON.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Mapping, TypedDict


@dataclass(frozen=True, slots=True)
class LocationRecord:
    """One known point-of-presence / city."""

    iata: str          # Facility code, e.g. "ORD"
    latitude: float
    longitude: float
    country: str       # e.g. "United States"
    c2: str            # ISO 3166 alpha-2, e.g. "US"
    c3: str            # ISO 3166 alpha-3, e.g. "USA"
    state: str
    city: str
    timezone: str      # IANA name, e.g. "America/Chicago"

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "LocationRecord":
        """Build a record from one dataset entry.

        Raises ``KeyError``/``TypeError``/``ValueError`` when the coordinates
        are missing, not numeric or not finite; the loader skips such entries.
        """
        return cls(
            iata=_text(raw.get("iata")).upper(),
            latitude=_coordinate(raw, "latitude"),
            longitude=_coordinate(raw, "longitude"),
            country=_text(raw.get("country")),
            c2=_text(raw.get("c2")).upper(),
            c3=_text(raw.get("c3")).upper(),
            state=_text(raw.get("state")),
            city=_text(raw.get("city")),
            timezone=_text(raw.get("timezone")),
        )


@dataclass(frozen=True, slots=True)
class EventRecord:
    """One scheduled training event."""

    name: str
    type: str          # Category, e.g. "Yoga"
    latitude: float
    longitude: float
    address: str
    start: str         # Opaque, displayed verbatim

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "EventRecord":
        return cls(
            name=_text(raw.get("name")),
            type=_text(raw.get("type")),
            latitude=_coordinate(raw, "latitude"),
            longitude=_coordinate(raw, "longitude"),
            address=_text(raw.get("address")),
            start=_text(raw.get("start")),
        )

    def searchable_text(self) -> str:
        """Lower-cased haystack the query tokens are matched against."""
        return f"{self.name} {self.type} {self.address}".lower()


class ResolvedLocation(TypedDict):
    """Normalised answer of the location resolver."""

    latitude: float | None
    longitude: float | None
    country: str
    c2: str
    c3: str
    state: str
    region: str  # same value as state
    city: str
    timezone: str
    locationservices: Literal["enabled", "disabled"]
    language: str


class RankedEvent(TypedDict):
    """An event annotated with its distance and relevance."""

    name: str
    type: str
    latitude: float
    longitude: float
    address: str
    start: str
    distance: float | None
    unit: Literal["km", "mi"]
    score: int


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _coordinate(raw: Mapping[str, Any], key: str) -> float:
    value = float(raw[key])
    if not math.isfinite(value):
        raise ValueError(f"{key} is not finite: {raw[key]!r}")
    return value


__all__ = ["EventRecord", "LocationRecord", "RankedEvent", "ResolvedLocation"]
