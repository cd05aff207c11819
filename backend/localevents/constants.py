# backend/localevents/constants.py

"""
Global constants shared across modules: the outbound User-Agent, the header
names the resolver inspects and the unit conversion used by search.
"""

from __future__ import annotations

from typing import Final

USER_AGENT: Final = "local-events/1.0 (+https://localevents.pages.dev/about.html)"

# ── Data sources ─────────────────────────────────────────────────────────
DEFAULT_LOCATIONS_URL: Final = "http://localhost:8090/locations.json"
DEFAULT_EVENTS_URL: Final = "http://localhost:8090/classes.json"
FETCH_TIMEOUT_S: Final = 10.0

# ── Geometry / units ─────────────────────────────────────────────────────
R_EARTH_KM: Final = 6_371.0
KM_TO_MI: Final = 0.621371
NON_METRIC_COUNTRIES: Final[frozenset[str]] = frozenset({"US", "GB"})

# ── Resolver ─────────────────────────────────────────────────────────────
GEOLOCATION_TIMEOUT_S: Final = 5.0
DEFAULT_LIMIT: Final = 3

HEADER_LAT_LONG: Final = "x-client-city-lat-long"
HEADER_LATITUDE: Final = "cf-iplatitude"
HEADER_LONGITUDE: Final = "cf-iplongitude"
HEADER_CITY: Final[tuple[str, ...]] = ("cf-ipcity", "x-city")  # first wins
HEADER_COUNTRY: Final = "x-country"
#: Edge/proxy headers whose value ends in a facility (IATA) code, in order.
POP_HEADERS: Final[tuple[str, ...]] = ("x-served-by", "cf-ray")
