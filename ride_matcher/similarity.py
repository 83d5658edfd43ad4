"""Whole-route similarity scoring used to auto-match uploads to planned rides."""

from __future__ import annotations

import logging
import math
from typing import Optional

from .config import (
    SIMILARITY_DISTANCE_RATIO_OVERRIDE,
    SIMILARITY_DISTANCE_WEIGHT,
    SIMILARITY_FAR_RADIUS_M,
    SIMILARITY_NEAR_RADIUS_M,
    SIMILARITY_WAYPOINT_WEIGHT,
)
from .geo import haversine_m
from .models import Track, TrackPoint

LOGGER = logging.getLogger(__name__)


def distance_score(distance_a_km: Optional[float], distance_b_km: Optional[float]) -> float:
    """Return the length ratio of two routes, snapped to 1.0 when nearly equal."""

    a = distance_a_km or 0.0
    b = distance_b_km or 0.0
    longest = max(a, b)
    if not math.isfinite(longest):
        return 0.0
    if longest <= 0.0:
        # Two zero-length tracks have identical length.
        return 1.0 if a == b else 0.0
    ratio = min(a, b) / longest
    if ratio > SIMILARITY_DISTANCE_RATIO_OVERRIDE:
        return 1.0
    return ratio


def waypoint_score(distance_m: float) -> float:
    """Score one start/end pair: 1.0 inside the near radius, linear decay after."""

    if not math.isfinite(distance_m):
        return 0.0
    if distance_m < SIMILARITY_NEAR_RADIUS_M:
        return 1.0
    return max(0.0, 1.0 - distance_m / SIMILARITY_FAR_RADIUS_M)


def _endpoints(track: Track) -> Optional[tuple[TrackPoint, TrackPoint]]:
    positioned = track.positioned_points
    if not positioned:
        return None
    return positioned[0], positioned[-1]


def route_similarity(a: Track, b: Track) -> float:
    """Return how alike two whole routes are, in ``[0, 1]``.

    Compares total length and the start/end positions. Never raises: empty
    or unusable tracks score 0.
    """

    ends_a = _endpoints(a)
    ends_b = _endpoints(b)
    if ends_a is None or ends_b is None:
        return 0.0

    (start_a, end_a), (start_b, end_b) = ends_a, ends_b
    start_distance_m = haversine_m(
        start_a.latitude, start_a.longitude, start_b.latitude, start_b.longitude
    )
    end_distance_m = haversine_m(
        end_a.latitude, end_a.longitude, end_b.latitude, end_b.longitude
    )

    dist_score = distance_score(a.distance_km, b.distance_km)
    waypoints = (waypoint_score(start_distance_m) + waypoint_score(end_distance_m)) / 2
    total = (
        dist_score * SIMILARITY_DISTANCE_WEIGHT
        + waypoints * SIMILARITY_WAYPOINT_WEIGHT
    )
    if not math.isfinite(total):
        return 0.0

    LOGGER.debug(
        "Route similarity distance=%.2f start=%.0fm end=%.0fm waypoints=%.2f "
        "total=%.3f",
        dist_score,
        start_distance_m,
        end_distance_m,
        waypoints,
        total,
    )
    return max(0.0, min(1.0, total))


__all__ = ["distance_score", "route_similarity", "waypoint_score"]
