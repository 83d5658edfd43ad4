"""Central configuration for the ride matching engine.

All values are constants imported by the rest of the package. Tunable values
are read from environment variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_str(key: str, default: str | None) -> str | None:
    value = os.getenv(key)
    if value is None:
        return default
    value = value.strip()
    return value or default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Geo math
# ---------------------------------------------------------------------------
# Mean Earth radius used by the Haversine formula.
EARTH_RADIUS_KM = 6371.0


# ---------------------------------------------------------------------------
# Track metrics
# ---------------------------------------------------------------------------
# Point-to-point speed (km/h) at or below which an interval counts as stopped.
STOPPED_SPEED_THRESHOLD_KMH = _env_float("STOPPED_SPEED_THRESHOLD_KMH", 0.5)


# ---------------------------------------------------------------------------
# Route similarity (auto-matching uploads to planned rides)
# ---------------------------------------------------------------------------
# Length ratio above which two routes are treated as the same length.
SIMILARITY_DISTANCE_RATIO_OVERRIDE = 0.95

# Start/end points closer than this score a perfect waypoint match.
SIMILARITY_NEAR_RADIUS_M = 500.0

# Waypoint score decays linearly to zero at this distance.
SIMILARITY_FAR_RADIUS_M = 2000.0

# Composite weights; they sum to 1.0.
SIMILARITY_DISTANCE_WEIGHT = 0.3
SIMILARITY_WAYPOINT_WEIGHT = 0.7


# Minimum similarity for an upload to be attached to a candidate ride.
AUTO_MATCH_THRESHOLD = _env_float("AUTO_MATCH_THRESHOLD", 0.7)

# IANA zone used for same-day comparisons when a ride's schedule is naive.
# Unset means the upload's own (UTC) calendar date is used.
MATCH_TIMEZONE = _env_str("MATCH_TIMEZONE", None)


# ---------------------------------------------------------------------------
# Proximity matching (ride completion)
# ---------------------------------------------------------------------------
PROXIMITY_RADIUS_M = _env_float("PROXIMITY_RADIUS_M", 50.0)
PROXIMITY_TIME_WINDOW_S = _env_float("PROXIMITY_TIME_WINDOW_S", 15.0)
PROXIMITY_MIN_MATCH_PERCENT = _env_float("PROXIMITY_MIN_MATCH_PERCENT", 80.0)

# Threads used when checking many participants against one organizer track.
PARTICIPANT_MAX_WORKERS = _env_int("PARTICIPANT_MAX_WORKERS", 4)


# ---------------------------------------------------------------------------
# Detailed route comparison
# ---------------------------------------------------------------------------
ROUTE_SIMILARITY_THRESHOLD_PCT = _env_float("ROUTE_SIMILARITY_THRESHOLD_PCT", 85.0)
ROUTE_TIME_WINDOW_MINUTES = _env_float("ROUTE_TIME_WINDOW_MINUTES", 60.0)
ROUTE_MINIMUM_TRACK_POINTS = _env_int("ROUTE_MINIMUM_TRACK_POINTS", 50)
ROUTE_MAX_DISTANCE_DEVIATION_M = _env_float("ROUTE_MAX_DISTANCE_DEVIATION_M", 100.0)

# Weights of the geometric / temporal / elevation components.
ROUTE_GEOMETRIC_WEIGHT = 0.6
ROUTE_TEMPORAL_WEIGHT = 0.25
ROUTE_ELEVATION_WEIGHT = 0.15

# Score reported for a component whose input series is missing.
ROUTE_NEUTRAL_SCORE = 50.0


# ---------------------------------------------------------------------------
# Track repository
# ---------------------------------------------------------------------------
# Maximum number of parsed tracks kept in a repository's in-memory cache.
TRACK_CACHE_SIZE = _env_int("TRACK_CACHE_SIZE", 64)


# ---------------------------------------------------------------------------
# Excel report formatting
# ---------------------------------------------------------------------------
# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = _env_bool("EXCEL_AUTOSIZE_COLUMNS", True)
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
EXCEL_AUTOSIZE_MAX_ROWS = (
    5000  # skip autosize for very large sheets (performance guard)
)
