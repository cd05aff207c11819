"""
main.py – FastAPI entry point
=============================

Serves the location cascade and the nearby-event search as JSON.

The HTTP request stands in for the browser: its ``Accept-Language`` (or
``?lang=``) is the locale tag, ``X-Timezone`` (or ``?tz=``) the IANA
timezone, and an optional ``lat``/``lon`` query pair the device
geolocation fix.
"""

from __future__ import annotations

# ─── Std-lib / third-party ────────────────────────────────────────────
import datetime as dt
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# ─── Project modules ──────────────────────────────────────────────────
from .constants import (
    DEFAULT_EVENTS_URL,
    DEFAULT_LIMIT,
    DEFAULT_LOCATIONS_URL,
    GEOLOCATION_TIMEOUT_S,
)
from .device import ClientContext, fixed_position
from .service import LocalEvents

# ─── Logging ──────────────────────────────────────────────────────────
LOG = logging.getLogger("api")

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(levelname)s:     %(name)s - %(message)s"))
for _name in ("api", "local_events", "dataset", "location_resolver", "event_search", "device", "extapi"):
    logging.getLogger(_name).addHandler(_handler)
    logging.getLogger(_name).setLevel(logging.INFO)

# ---------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------
load_dotenv()
LOCATIONS_URL = os.getenv("LOCATIONS_URL", DEFAULT_LOCATIONS_URL)
EVENTS_URL = os.getenv("EVENTS_URL", DEFAULT_EVENTS_URL)
GEO_TIMEOUT_S = float(os.getenv("GEOLOCATION_TIMEOUT_S", str(GEOLOCATION_TIMEOUT_S)))
RESULT_LIMIT = int(os.getenv("DEFAULT_LIMIT", str(DEFAULT_LIMIT)))

UTC = dt.timezone.utc

limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def build_service() -> LocalEvents:
    """Create the process-wide :class:`LocalEvents` (patched in tests)."""
    return LocalEvents(
        LOCATIONS_URL, EVENTS_URL, geolocation_timeout=GEO_TIMEOUT_S
    )


def primary_language(accept_language: str | None) -> str:
    """``"en-GB,en;q=0.9"`` → ``"en-GB"``; ``""`` when absent or ``*``."""
    if not accept_language:
        return ""
    first = accept_language.split(",")[0].split(";")[0].strip()
    return "" if first == "*" else first


def client_context(
    request: Request,
    *,
    lang: str | None = None,
    tz: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
) -> ClientContext:
    """Translate one HTTP request into the client's capabilities."""
    language = lang or primary_language(request.headers.get("accept-language"))
    timezone = tz or request.headers.get("x-timezone", "")
    geolocate = fixed_position(lat, lon) if lat is not None and lon is not None else None
    return ClientContext(language=language, timezone=timezone, geolocate=geolocate)


def _service(request: Request) -> LocalEvents:
    return request.app.state.local_events


# ---------------------------------------------------------------------
# Lifespan – load reference data once
# ---------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: N802 – FastAPI naming style
    """Create the shared service and wait for its single load."""
    service = build_service()
    app.state.local_events = service
    if not await service.wait_for_load():
        LOG.warning("[init] reference data unavailable – serving empty results")
    yield


# ---------------------------------------------------------------------
# FastAPI instance & middleware
# ---------------------------------------------------------------------
app = FastAPI(title="Local Events", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 when rate limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Try again later."},
    )


@app.exception_handler(Exception)
async def failure_handler(request: Request, exc: Exception):
    """Anything unexpected → one generic message, full traceback in the log."""
    LOG.error("[%s] %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "There was a problem determining your location. "
            "Please try refreshing the page."
        },
    )


ALLOWED_ORIGINS = [
    "https://localevents.pages.dev",
    "http://localhost:8090",
    "http://127.0.0.1:8090",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


# Health probe --------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Return HTTP 200 with body “ok” if the app is up."""
    return PlainTextResponse("ok", status_code=200)


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
@app.get("/status.json")
async def status(request: Request) -> JSONResponse:
    """Load outcome and collection sizes."""
    service = _service(request)
    loaded = await service.wait_for_load()
    snap = service.snapshot
    payload: dict[str, Any] = {
        "loaded": loaded,
        "locations": len(snap.locations),
        "events": len(snap.events),
        "loaded_at": snap.loaded_at,
        "timestamp": dt.datetime.now(UTC),
    }
    return JSONResponse(content=jsonable_encoder(payload))


@app.get("/location/fast.json")
async def location_fast(
    request: Request,
    lang: str | None = Query(None),
    tz: str | None = Query(None),
) -> JSONResponse:
    """Header / facility-code / locale guess – never empty-handed."""
    ctx = client_context(request, lang=lang, tz=tz)
    location = await _service(request).location_fast(ctx)
    return JSONResponse(content=jsonable_encoder(location))


@app.get("/location/accurate.json")
async def location_accurate(
    request: Request,
    lat: float | None = Query(None, ge=-90, le=90),
    lon: float | None = Query(None, ge=-180, le=180),
    lang: str | None = Query(None),
) -> JSONResponse:
    """Snap the device fix (``lat``/``lon``) to the nearest known place."""
    ctx = client_context(request, lang=lang, lat=lat, lon=lon)
    location = await _service(request).location_accurate(ctx)
    return JSONResponse(
        content=jsonable_encoder({"location": location}),
        status_code=200 if location is not None else 404,
    )


@app.get("/events/search.json")
@limiter.limit("60/minute")
async def search_events(
    request: Request,
    q: str = Query(""),
    limit: int | None = Query(None, ge=1, le=100),
    lat: float | None = Query(None, ge=-90, le=90),
    lon: float | None = Query(None, ge=-180, le=180),
    lang: str | None = Query(None),
    tz: str | None = Query(None),
) -> JSONResponse:
    """Fast location → ranked events, refined by the device fix if given."""
    ctx = client_context(request, lang=lang, tz=tz, lat=lat, lon=lon)
    result = await _service(request).nearby(q, limit or RESULT_LIMIT, ctx)
    return JSONResponse(content=jsonable_encoder(result))


@app.get("/events/closest.json")
async def closest_events(
    request: Request,
    limit: int | None = Query(None, ge=1, le=100),
    lang: str | None = Query(None),
    tz: str | None = Query(None),
) -> JSONResponse:
    """Events closest to the fast location."""
    ctx = client_context(request, lang=lang, tz=tz)
    events = await _service(request).closest_events(limit or RESULT_LIMIT, ctx)
    return JSONResponse(content=jsonable_encoder({"events": events}))
