"""
device.py
~~~~~~~~~
What the client device exposes to the resolver: its locale tag, its IANA
timezone and – optionally – a one-shot geolocation fix.

The geolocation call is raced against a timer; whichever settles first
wins and the other outcome is discarded. A missing capability, a refusal,
an error or a timeout all come back as ``None``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable

from .constants import GEOLOCATION_TIMEOUT_S
from .errors import GeolocationDenied

LOG = logging.getLogger("device")

Position = tuple[float, float]
Geolocate = Callable[[], Awaitable[Position]]


@dataclass(frozen=True)
class ClientContext:
    """Capabilities of the client the location is being resolved for."""

    language: str = ""
    timezone: str = ""
    geolocate: Geolocate | None = None  # None ⇒ no geolocation capability


def fixed_position(lat: float, lon: float) -> Geolocate:
    """Return a *geolocate* callable that always reports *lat/lon*."""

    async def _geolocate() -> Position:
        return (lat, lon)

    return _geolocate


def denied_position() -> Geolocate:
    """Return a *geolocate* callable that behaves like a refused prompt."""

    async def _geolocate() -> Position:
        raise GeolocationDenied("User denied Geolocation")

    return _geolocate


async def request_position(
    ctx: ClientContext,
    timeout: float = GEOLOCATION_TIMEOUT_S,
) -> Position | None:
    """
    Ask the device for a single position fix within *timeout* seconds.

    Returns:
        ``(latitude, longitude)`` or ``None`` when the device has no
        geolocation, refuses, fails, times out or reports a non-finite fix.
    """
    if ctx.geolocate is None:
        LOG.info("Geolocation not available")
        return None

    try:
        lat, lon = await asyncio.wait_for(ctx.geolocate(), timeout=timeout)
    except asyncio.TimeoutError:
        LOG.info("Geolocation timed out after %.1f s", timeout)
        return None
    except Exception as exc:  # noqa: BLE001 – denial or device failure
        LOG.info("Failed to get geolocation: %s", exc)
        return None

    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        LOG.warning("Geolocation returned a non-numeric fix: %r, %r", lat, lon)
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        LOG.warning("Geolocation returned a non-finite fix: %s, %s", lat, lon)
        return None

    LOG.info("Obtained geolocation: %.4f, %.4f", lat, lon)
    return (lat, lon)


__all__ = [
    "ClientContext",
    "Geolocate",
    "Position",
    "denied_position",
    "fixed_position",
    "request_position",
]
