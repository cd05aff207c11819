"""resolver.py
~~~~~~~~~~~~~~
Work out **where the user probably is** from whatever is already at hand.

Fast path (``location_fast``)
-----------------------------
No permission prompts, only data captured at load time. Tiers are tried
strictly in order and the first one that yields a place wins:

1. **headers**  – geo headers injected by the CDN/proxy
   (``x-client-city-lat-long`` or ``cf-iplatitude``/``cf-iplongitude``,
   plus ``cf-ipcity``/``x-city`` and ``x-country``).
2. **pop**      – facility code at the end of ``x-served-by`` / ``cf-ray``.
3. **language** – client locale tag + IANA timezone.
4. nothing      – an empty location carrying only the language tag.

Each tier is a plain function ``(TierInput) -> dict | None`` so it can be
tested on its own.

Accurate path (``location_accurate``)
-------------------------------------
One device geolocation fix (5 s budget), snapped to the nearest reference
record for its administrative metadata. ``None`` whenever no fix is had.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Callable, Final, Iterable, Mapping, Optional

from .constants import (
    GEOLOCATION_TIMEOUT_S,
    HEADER_CITY,
    HEADER_COUNTRY,
    HEADER_LAT_LONG,
    HEADER_LATITUDE,
    HEADER_LONGITUDE,
    POP_HEADERS,
)
from .dataset import DataSnapshot
from .device import ClientContext, request_position
from .geo import find_nearest
from .models import LocationRecord, ResolvedLocation

LOG = logging.getLogger("location_resolver")


@dataclass(frozen=True)
class TierInput:
    """Read-only view a tier works from."""

    headers: Mapping[str, str]
    locations: tuple[LocationRecord, ...]
    language: str = ""
    timezone: str = ""


Place = dict[str, Any]
Tier = Callable[[TierInput], Optional[Place]]

# ── Field precedence ─────────────────────────────────────────────────────
# field → sources in priority order, each as (source, source_field).
# "header" is what the geo headers said, "match" the reference record.
FIELD_SOURCES: Final[dict[str, tuple[tuple[str, str], ...]]] = {
    "latitude": (("header", "latitude"), ("match", "latitude")),
    "longitude": (("header", "longitude"), ("match", "longitude")),
    "country": (("header", "country"), ("match", "country")),
    "c2": (("match", "c2"),),
    "c3": (("match", "c3"),),
    "state": (("match", "state"),),
    "region": (("match", "state"),),
    "city": (("header", "city"), ("match", "city")),
    "timezone": (("match", "timezone"),),
}
_COORD_FIELDS: Final = frozenset({"latitude", "longitude"})

#: Device fix: coordinates from the device, every name from the record.
ACCURATE_SOURCES: Final[dict[str, tuple[tuple[str, str], ...]]] = {
    **FIELD_SOURCES,
    "latitude": (("device", "latitude"),),
    "longitude": (("device", "longitude"),),
    "country": (("match", "country"),),
    "city": (("match", "city"),),
}


def merge_fields(
    sources: Mapping[str, Mapping[str, Any]],
    table: Mapping[str, tuple[tuple[str, str], ...]] = FIELD_SOURCES,
) -> Place:
    """
    Build a place by taking, for every field, the first non-empty value
    along its priority list in *table*.

    Missing coordinates become ``None``, missing text becomes ``""``.
    """
    place: Place = {}
    for name, priority in table.items():
        for source, key in priority:
            value = sources.get(source, {}).get(key)
            if value is not None and value != "":
                place[name] = value
                break
        else:
            place[name] = None if name in _COORD_FIELDS else ""
    return place


def place_from_record(rec: LocationRecord) -> Place:
    return merge_fields({"match": asdict(rec)})


# ── Header parsing ───────────────────────────────────────────────────────
def _parse_float(value: str | None) -> float | None:
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def read_header_geo(headers: Mapping[str, str]) -> dict[str, Any] | None:
    """
    Extract ``latitude``/``longitude``/``city``/``country`` from geo headers.

    The combined lat-long header wins over the separate ones; when it is
    present but unparsable the separate headers are *not* consulted.
    Returns ``None`` when no geo header carries a value.
    """
    geo: dict[str, Any] = {}

    combined = headers.get(HEADER_LAT_LONG)
    if combined:
        parts = combined.split(",")
        lat = _parse_float(parts[0])
        lon = _parse_float(parts[1]) if len(parts) > 1 else None
        if lat is not None and lon is not None:
            geo["latitude"] = lat
            geo["longitude"] = lon
        else:
            LOG.info("Ignoring %s=%r", HEADER_LAT_LONG, combined)
    else:
        lat = _parse_float(headers.get(HEADER_LATITUDE))
        lon = _parse_float(headers.get(HEADER_LONGITUDE))
        if lat is not None:
            geo["latitude"] = lat
        if lon is not None:
            geo["longitude"] = lon

    city = next((headers[h] for h in HEADER_CITY if headers.get(h)), None)
    if city:
        geo["city"] = city
    if headers.get(HEADER_COUNTRY):
        geo["country"] = headers[HEADER_COUNTRY]

    return geo or None


def country_from_language(tag: str) -> str:
    """Guess a country code from a locale tag: ``"en-GB"`` → ``"GB"``."""
    if not tag:
        return ""
    parts = tag.split("-")
    if len(parts) > 1 and parts[1]:
        return parts[1]
    return tag[-2:]


# ── Tiers ────────────────────────────────────────────────────────────────
def header_geo_tier(inp: TierInput) -> Place | None:
    """Tier 1 – CDN geo headers."""
    geo = read_header_geo(inp.headers)
    if not geo:
        return None

    lat, lon = geo.get("latitude"), geo.get("longitude")
    if lat is not None and lon is not None:
        nearest = find_nearest(lat, lon, inp.locations)
        if nearest is not None:
            LOG.info("Header coordinates snapped to %s (%s)", nearest.iata, nearest.city)
            return merge_fields({"header": geo, "match": asdict(nearest)})

    named = {k: geo[k] for k in ("city", "country") if k in geo}
    if not named:
        return None
    city, country = named.get("city"), named.get("country")
    for rec in inp.locations:
        if (city and rec.city == city) or (country and rec.country == country):
            LOG.info("Header city/country matched %s (%s)", rec.iata, rec.city)
            return merge_fields({"header": named, "match": asdict(rec)})
    return None


def pop_tier(inp: TierInput) -> Place | None:
    """Tier 2 – facility code at the tail of an edge/proxy header."""
    for header in POP_HEADERS:
        value = inp.headers.get(header)
        if not value:
            continue
        code = value[-3:].upper()
        LOG.debug("Possible facility code %r from %s", code, header)
        for rec in inp.locations:
            if rec.iata == code:
                LOG.info("Facility code %s from %s matched %s", code, header, rec.city)
                return place_from_record(rec)
    return None


def language_timezone_tier(inp: TierInput) -> Place | None:
    """Tier 3 – first record in the client's timezone and locale country."""
    if not inp.language and not inp.timezone:
        return None

    country_code = country_from_language(inp.language)
    matches: Iterable[LocationRecord] = inp.locations
    if inp.timezone:
        matches = [rec for rec in matches if rec.timezone == inp.timezone]
    if country_code:
        wanted = country_code.upper()
        matches = [rec for rec in matches if rec.c2 == wanted]

    first = next(iter(matches), None)
    return place_from_record(first) if first is not None else None


FAST_TIERS: Final[tuple[tuple[str, Tier], ...]] = (
    ("headers", header_geo_tier),
    ("pop", pop_tier),
    ("language", language_timezone_tier),
)


def first_success(
    tiers: Iterable[tuple[str, Tier]],
    inp: TierInput,
) -> tuple[str, Place] | None:
    """Run *tiers* in order; return ``(name, place)`` of the first hit."""
    for name, tier in tiers:
        place = tier(inp)
        if place is not None:
            return name, place
        LOG.debug("Tier %s yielded nothing", name)
    return None


def _finish(place: Place, *, services: str, language: str) -> ResolvedLocation:
    return ResolvedLocation(
        latitude=place["latitude"],
        longitude=place["longitude"],
        country=place["country"],
        c2=place["c2"],
        c3=place["c3"],
        state=place["state"],
        region=place["region"],
        city=place["city"],
        timezone=place["timezone"],
        locationservices=services,  # type: ignore[typeddict-item]
        language=language,
    )


# ── Resolver ─────────────────────────────────────────────────────────────
class LocationResolver:
    """Location cascade bound to one immutable :class:`DataSnapshot`."""

    def __init__(
        self,
        snapshot: DataSnapshot,
        *,
        tiers: tuple[tuple[str, Tier], ...] = FAST_TIERS,
        geolocation_timeout: float = GEOLOCATION_TIMEOUT_S,
    ) -> None:
        self._snapshot = snapshot
        self._tiers = tiers
        self._timeout = geolocation_timeout

    def find_nearest(self, latitude: float, longitude: float) -> LocationRecord | None:
        return find_nearest(latitude, longitude, self._snapshot.locations)

    def location_fast(self, ctx: ClientContext) -> ResolvedLocation:
        """Best guess without device APIs; never ``None``."""
        language = ctx.language or ""
        inp = TierInput(
            headers=self._snapshot.headers,
            locations=self._snapshot.locations,
            language=language,
            timezone=ctx.timezone or "",
        )
        hit = first_success(self._tiers, inp)
        if hit is None:
            LOG.info("No tier produced a location")
            return _finish(merge_fields({}), services="disabled", language=language)

        name, place = hit
        LOG.info("Fast location via %s: %s, %s", name, place["city"], place["c2"])
        return _finish(place, services="disabled", language=language)

    async def location_accurate(self, ctx: ClientContext) -> ResolvedLocation | None:
        """Device fix snapped to the nearest record, or ``None``."""
        position = await request_position(ctx, timeout=self._timeout)
        if position is None:
            return None

        lat, lon = position
        nearest = self.find_nearest(lat, lon)
        if nearest is None:
            LOG.info("No locations loaded – cannot resolve device fix")
            return None

        place = merge_fields(
            {"device": {"latitude": lat, "longitude": lon}, "match": asdict(nearest)},
            table=ACCURATE_SOURCES,
        )
        return _finish(place, services="enabled", language=ctx.language or "")


__all__ = [
    "ACCURATE_SOURCES",
    "FAST_TIERS",
    "FIELD_SOURCES",
    "LocationResolver",
    "TierInput",
    "country_from_language",
    "first_success",
    "header_geo_tier",
    "language_timezone_tier",
    "merge_fields",
    "place_from_record",
    "pop_tier",
    "read_header_geo",
]
