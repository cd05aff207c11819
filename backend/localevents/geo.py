"""
geo.py
~~~~~~
Great-circle helpers shared by the resolver and the search engine.
"""

from __future__ import annotations

import math
from typing import Iterable

from .constants import KM_TO_MI, R_EARTH_KM
from .models import LocationRecord


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great‑circle distance (km) between *lat1/lon1* and *lat2/lon2*."""

    φ1, φ2 = map(math.radians, (lat1, lat2))
    dφ = math.radians(lat2 - lat1)
    dλ = math.radians(lon2 - lon1)
    a = math.sin(dφ / 2) ** 2 + math.cos(φ1) * math.cos(φ2) * math.sin(dλ / 2) ** 2
    return 2 * R_EARTH_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def km_to_miles(km: float) -> float:
    return km * KM_TO_MI


def find_nearest(
    latitude: float,
    longitude: float,
    records: Iterable[LocationRecord],
) -> LocationRecord | None:
    """
    Return the record closest to *latitude/longitude*.

    Exhaustive scan; on equal distances the first record in dataset order
    wins. Returns ``None`` only when *records* is empty.
    """
    nearest: LocationRecord | None = None
    best = math.inf
    for rec in records:
        d = haversine_km(latitude, longitude, rec.latitude, rec.longitude)
        if d < best:
            best = d
            nearest = rec
    return nearest


__all__ = ["find_nearest", "haversine_km", "km_to_miles"]
