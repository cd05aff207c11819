"""
errors.py
~~~~~~~~~
Exception types raised inside the core.

None of these escape a public :class:`~localevents.service.LocalEvents`
call: load errors become a ``False`` load result and geolocation errors
become a ``None`` location.
"""

from __future__ import annotations


class LocalEventsError(Exception):
    """Base class for every error raised by this package."""


class DatasetLoadError(LocalEventsError):
    """A reference collection could not be fetched or has the wrong shape."""


class GeolocationError(LocalEventsError):
    """The device could not produce a position fix."""


class GeolocationDenied(GeolocationError):
    """The user refused to share the device position."""


__all__ = [
    "DatasetLoadError",
    "GeolocationDenied",
    "GeolocationError",
    "LocalEventsError",
]
