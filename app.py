"""FastAPI service for the Meeting Bookings Dashboard.

Serves booking statistics as JSON for the dashboard front end, with cached
stats for the configured export file (15-minute TTL by default) and an
endpoint that computes stats for records posted directly.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, HTTPException

from booking_stats import StatsCache, build_dashboard_payload

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
BOOKINGS_PATH = Path(
    os.environ.get("BOOKING_STATS_DATA", Path(__file__).parent / "bookings.json")
)
CACHE_TTL_SECONDS = int(os.environ.get("BOOKING_STATS_CACHE_TTL", "900"))

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Meeting Bookings Dashboard")

# ---------------------------------------------------------------------------
# Thread-safe caches
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "data": None,
    "built_at": 0.0,
}

_posted_stats = StatsCache()


def _build_payload() -> dict[str, Any]:
    """Build the payload for the export file, mapping load errors to HTTP."""
    try:
        return build_dashboard_payload(BOOKINGS_PATH)
    except FileNotFoundError:
        logger.error("Booking export not found at %s", BOOKINGS_PATH)
        raise HTTPException(status_code=503, detail="Booking data file not found")
    except json.JSONDecodeError:
        logger.exception("Invalid JSON in %s", BOOKINGS_PATH)
        raise HTTPException(status_code=500, detail=f"Invalid JSON in {BOOKINGS_PATH.name}")
    except ValueError as exc:
        logger.error("Unusable booking export %s: %s", BOOKINGS_PATH, exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _get_cached_data(force_refresh: bool = False) -> dict[str, Any]:
    """Return cached dashboard data, rebuilding if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["data"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["data"]

    data = _build_payload()

    with _cache_lock:
        _cache["data"] = data
        _cache["built_at"] = time.monotonic()

    return data


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/stats")
def api_stats():
    """Return the dashboard payload for the configured booking export."""
    return _get_cached_data()


@app.post("/api/stats")
def api_stats_for_bookings(bookings: list[dict[str, Any]] = Body(...)):
    """Return stats for the booking records posted in the request body."""
    return _posted_stats.get(bookings)


@app.get("/api/refresh")
def api_refresh():
    """Force a cache rebuild and return fresh data."""
    data = _get_cached_data(force_refresh=True)
    return {
        "status": "refreshed",
        "generated_at": data["generated_at"],
    }
