"""Local Events – approximate user location and nearby training events."""

from .service import LocalEvents

__all__ = ["LocalEvents"]
