"""Detailed comparison of an uploaded activity against a planned route.

Complements the quick :func:`~ride_matcher.similarity.route_similarity` score
with three components on a percent scale:

* geometric similarity from the symmetric Hausdorff distance between the two
  point sets, measured in a shared local UTM projection;
* temporal alignment from the correlation of point-to-point speed profiles;
* elevation correlation from the two elevation profiles.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np
from shapely.geometry import MultiPoint

from .config import (
    ROUTE_ELEVATION_WEIGHT,
    ROUTE_GEOMETRIC_WEIGHT,
    ROUTE_NEUTRAL_SCORE,
    ROUTE_TEMPORAL_WEIGHT,
)
from .geo import haversine_m
from .models import (
    RouteComparisonConfig,
    RouteComparisonDetails,
    RouteComparisonResult,
    Track,
)
from .preprocessing import reproject_to_local_crs, resample_series

LOGGER = logging.getLogger(__name__)


def hausdorff_distance_m(planned: Track, uploaded: Track) -> float:
    """Return the symmetric Hausdorff distance between two tracks in metres."""

    planned_latlon = [p.latlon for p in planned.positioned_points]
    uploaded_latlon = [p.latlon for p in uploaded.positioned_points]
    if not planned_latlon or not uploaded_latlon:
        return math.inf
    # One transformer for both tracks so distances share a frame.
    metric, _transformer = reproject_to_local_crs(planned_latlon + uploaded_latlon)
    planned_metric = metric[: len(planned_latlon)]
    uploaded_metric = metric[len(planned_latlon) :]
    return float(
        MultiPoint(planned_metric).hausdorff_distance(MultiPoint(uploaded_metric))
    )


def speed_profile_kmh(track: Track) -> List[float]:
    """Return speeds between consecutive timed, positioned samples."""

    speeds: List[float] = []
    for prev, curr in zip(track.points, track.points[1:]):
        if prev.timestamp is None or curr.timestamp is None:
            continue
        if not (prev.has_position and curr.has_position):
            continue
        elapsed = (curr.timestamp - prev.timestamp).total_seconds()
        if elapsed <= 0:
            continue
        distance = haversine_m(
            prev.latitude, prev.longitude, curr.latitude, curr.longitude
        )
        speeds.append(distance / elapsed * 3.6)
    return speeds


def elevation_profile_m(track: Track) -> List[float]:
    return [p.elevation_m for p in track.points if p.elevation_m is not None]


def pearson_correlation(first: Sequence[float], second: Sequence[float]) -> float:
    """Correlate two series after resampling both to the shorter length.

    Returns 0.0 when either series is empty or has no variance.
    """

    n = min(len(first), len(second))
    if n == 0:
        return 0.0
    a = resample_series(first, n)
    b = resample_series(second, n)
    diff_a = a - a.mean()
    diff_b = b - b.mean()
    denominator = math.sqrt(float(np.sum(diff_a**2)) * float(np.sum(diff_b**2)))
    if denominator == 0.0 or not math.isfinite(denominator):
        return 0.0
    return float(np.sum(diff_a * diff_b)) / denominator


def _correlation_score(first: Sequence[float], second: Sequence[float]) -> float:
    if not first or not second:
        return ROUTE_NEUTRAL_SCORE
    correlation = pearson_correlation(first, second)
    return max(0.0, min(100.0, (correlation + 1.0) * 50.0))


def geometric_similarity(
    planned: Track, uploaded: Track, max_distance_deviation_m: float
) -> float:
    distance = hausdorff_distance_m(planned, uploaded)
    if not math.isfinite(distance):
        return 0.0
    similarity = max(0.0, 100.0 - (distance / max_distance_deviation_m) * 100.0)
    return min(100.0, similarity)


def within_time_window(
    activity_start: Optional[datetime],
    planned_start: datetime,
    window_minutes: float,
) -> bool:
    if activity_start is None:
        return False
    # Parsed tracks are UTC-aware; a naive schedule is read as UTC too.
    if (activity_start.tzinfo is None) != (planned_start.tzinfo is None):
        activity_start = activity_start.replace(tzinfo=activity_start.tzinfo or timezone.utc)
        planned_start = planned_start.replace(tzinfo=planned_start.tzinfo or timezone.utc)
    delta = abs((activity_start - planned_start).total_seconds())
    return delta <= window_minutes * 60.0


def _failed_result(uploaded: Track, reason: str) -> RouteComparisonResult:
    return RouteComparisonResult(
        similarity=0.0,
        matched_points=0,
        total_points=len(uploaded.points),
        time_window_match=False,
        is_valid=False,
        details=RouteComparisonDetails(),
        reason=reason,
    )


def compare_routes(
    planned: Track,
    uploaded: Track,
    planned_start: datetime,
    config: Optional[RouteComparisonConfig] = None,
) -> RouteComparisonResult:
    """Compare an uploaded track with the planned route it claims to follow."""

    config = config or RouteComparisonConfig()
    if len(uploaded.positioned_points) < config.minimum_track_points:
        LOGGER.info(
            "Route comparison rejected: %d positioned points (< %d)",
            len(uploaded.positioned_points),
            config.minimum_track_points,
        )
        return _failed_result(uploaded, "Insufficient track points in uploaded activity")

    time_window_match = within_time_window(
        uploaded.start_time, planned_start, config.time_window_minutes
    )
    geometric = geometric_similarity(
        planned, uploaded, config.max_distance_deviation_m
    )
    temporal = _correlation_score(speed_profile_kmh(planned), speed_profile_kmh(uploaded))
    elevation = _correlation_score(
        elevation_profile_m(planned), elevation_profile_m(uploaded)
    )

    overall = (
        geometric * ROUTE_GEOMETRIC_WEIGHT
        + temporal * ROUTE_TEMPORAL_WEIGHT
        + elevation * ROUTE_ELEVATION_WEIGHT
    )
    total_points = len(uploaded.points)
    matched_points = int(round(overall / 100.0 * total_points))
    is_valid = overall >= config.similarity_threshold_pct and time_window_match

    LOGGER.debug(
        "Route comparison geometric=%.1f temporal=%.1f elevation=%.1f overall=%.1f "
        "window=%s valid=%s",
        geometric,
        temporal,
        elevation,
        overall,
        time_window_match,
        is_valid,
    )
    return RouteComparisonResult(
        similarity=overall,
        matched_points=matched_points,
        total_points=total_points,
        time_window_match=time_window_match,
        is_valid=is_valid,
        details=RouteComparisonDetails(
            geometric_similarity=geometric,
            temporal_alignment=temporal,
            elevation_correlation=elevation,
        ),
    )


__all__ = [
    "compare_routes",
    "elevation_profile_m",
    "geometric_similarity",
    "hausdorff_distance_m",
    "pearson_correlation",
    "speed_profile_kmh",
    "within_time_window",
]
