"""Summary metrics derived from an ordered sequence of track points."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence

from .config import STOPPED_SPEED_THRESHOLD_KMH
from .geo import haversine_km

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .models import TrackPoint


@dataclass(frozen=True, slots=True)
class TrackSummary:
    distance_km: Optional[float] = None
    total_duration_s: Optional[int] = None
    moving_time_s: Optional[int] = None
    elevation_gain_m: Optional[float] = None
    average_speed_kmh: Optional[float] = None
    average_heart_rate_bpm: Optional[int] = None
    max_heart_rate_bpm: Optional[int] = None
    start_time: Optional[datetime] = None


def total_distance_km(points: Sequence["TrackPoint"]) -> Optional[float]:
    """Sum consecutive segment lengths, skipping pairs with an invalid endpoint."""

    if not points:
        return None
    total = 0.0
    for prev, curr in zip(points, points[1:]):
        if not (prev.has_position and curr.has_position):
            continue
        total += haversine_km(
            prev.latitude, prev.longitude, curr.latitude, curr.longitude
        )
    return total


def elevation_gain_m(points: Sequence["TrackPoint"]) -> Optional[float]:
    """Return total climbing; descents are ignored."""

    gain = 0.0
    compared = False
    for prev, curr in zip(points, points[1:]):
        if prev.elevation_m is None or curr.elevation_m is None:
            continue
        compared = True
        delta = curr.elevation_m - prev.elevation_m
        if delta > 0:
            gain += delta
    return gain if compared else None


def total_duration_s(points: Sequence["TrackPoint"]) -> Optional[int]:
    timestamps = [p.timestamp for p in points if p.timestamp is not None]
    if len(timestamps) < 2:
        return None
    return int(math.floor((max(timestamps) - min(timestamps)).total_seconds()))


def moving_time_s(
    points: Sequence["TrackPoint"],
    stopped_speed_kmh: float = STOPPED_SPEED_THRESHOLD_KMH,
) -> Optional[float]:
    """Return seconds spent above ``stopped_speed_kmh`` between consecutive samples.

    ``None`` when no interval had timestamps and positions at both ends.
    """

    moving = 0.0
    evaluated = False
    for prev, curr in zip(points, points[1:]):
        if prev.timestamp is None or curr.timestamp is None:
            continue
        if not (prev.has_position and curr.has_position):
            continue
        elapsed = (curr.timestamp - prev.timestamp).total_seconds()
        if elapsed <= 0:
            continue
        evaluated = True
        distance = haversine_km(
            prev.latitude, prev.longitude, curr.latitude, curr.longitude
        )
        speed_kmh = distance / (elapsed / 3600.0)
        if speed_kmh > stopped_speed_kmh:
            moving += elapsed
    return moving if evaluated else None


def heart_rate_stats(points: Sequence["TrackPoint"]) -> tuple[Optional[int], Optional[int]]:
    """Return ``(mean, max)`` heart rate; the mean is rounded half-up."""

    samples: List[int] = [
        p.heart_rate_bpm for p in points if p.heart_rate_bpm is not None
    ]
    if not samples:
        return None, None
    mean = sum(samples) / len(samples)
    return int(math.floor(mean + 0.5)), max(samples)


def summarize_points(points: Sequence["TrackPoint"]) -> TrackSummary:
    """Compute every derived metric for a parsed track."""

    if not points:
        return TrackSummary()

    distance = total_distance_km(points)
    moving = moving_time_s(points)
    average_speed: Optional[float] = None
    if distance is not None and moving is not None and distance > 0 and moving > 0:
        # Speed over moving time; elapsed time would under-report it.
        average_speed = distance / (moving / 3600.0)
    avg_hr, max_hr = heart_rate_stats(points)
    timestamps = [p.timestamp for p in points if p.timestamp is not None]

    return TrackSummary(
        distance_km=distance,
        total_duration_s=total_duration_s(points),
        moving_time_s=int(math.floor(moving)) if moving is not None else None,
        elevation_gain_m=elevation_gain_m(points),
        average_speed_kmh=average_speed,
        average_heart_rate_bpm=avg_hr,
        max_heart_rate_bpm=max_hr,
        start_time=min(timestamps) if timestamps else None,
    )


__all__ = [
    "TrackSummary",
    "elevation_gain_m",
    "heart_rate_stats",
    "moving_time_s",
    "summarize_points",
    "total_distance_km",
    "total_duration_s",
]
