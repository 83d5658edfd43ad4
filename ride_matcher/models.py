"""Dataclasses describing parsed tracks and matching results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Hashable, Iterable, Optional, Tuple

from .config import (
    PROXIMITY_MIN_MATCH_PERCENT,
    PROXIMITY_RADIUS_M,
    PROXIMITY_TIME_WINDOW_S,
    ROUTE_MAX_DISTANCE_DEVIATION_M,
    ROUTE_MINIMUM_TRACK_POINTS,
    ROUTE_SIMILARITY_THRESHOLD_PCT,
    ROUTE_TIME_WINDOW_MINUTES,
)
from .metrics import summarize_points

LatLon = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """One GPS sample. Coordinates are ``nan`` when the source was unparsable."""

    latitude: float
    longitude: float
    elevation_m: Optional[float] = None
    timestamp: Optional[datetime] = None
    heart_rate_bpm: Optional[int] = None

    @property
    def has_position(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)

    @property
    def latlon(self) -> LatLon:
        return self.latitude, self.longitude


@dataclass(frozen=True, slots=True)
class Track:
    """Ordered track points plus summary metrics derived at parse time.

    Derived fields are ``None`` when the points cannot support them; zero is
    a real value, never a stand-in for "unknown".
    """

    name: Optional[str] = None
    points: Tuple[TrackPoint, ...] = ()
    distance_km: Optional[float] = None
    total_duration_s: Optional[int] = None
    moving_time_s: Optional[int] = None
    elevation_gain_m: Optional[float] = None
    average_speed_kmh: Optional[float] = None
    average_heart_rate_bpm: Optional[int] = None
    max_heart_rate_bpm: Optional[int] = None
    start_time: Optional[datetime] = None

    @classmethod
    def from_points(
        cls, points: Iterable[TrackPoint], name: Optional[str] = None
    ) -> "Track":
        """Build a track and compute every derived metric once."""

        ordered = tuple(points)
        summary = summarize_points(ordered)
        return cls(
            name=name,
            points=ordered,
            distance_km=summary.distance_km,
            total_duration_s=summary.total_duration_s,
            moving_time_s=summary.moving_time_s,
            elevation_gain_m=summary.elevation_gain_m,
            average_speed_kmh=summary.average_speed_kmh,
            average_heart_rate_bpm=summary.average_heart_rate_bpm,
            max_heart_rate_bpm=summary.max_heart_rate_bpm,
            start_time=summary.start_time,
        )

    @property
    def positioned_points(self) -> Tuple[TrackPoint, ...]:
        return tuple(point for point in self.points if point.has_position)

    @property
    def timed_points(self) -> Tuple[TrackPoint, ...]:
        return tuple(point for point in self.points if point.timestamp is not None)


@dataclass(frozen=True, slots=True)
class MatchedSegment:
    """Contiguous run of organizer points matched by a participant."""

    start_time: datetime
    end_time: datetime
    duration_s: float


@dataclass(frozen=True, slots=True)
class ProximityConfig:
    """Thresholds used to decide whether a participant followed the organizer."""

    proximity_radius_m: float = PROXIMITY_RADIUS_M
    time_window_s: float = PROXIMITY_TIME_WINDOW_S
    min_match_percent: float = PROXIMITY_MIN_MATCH_PERCENT


@dataclass(frozen=True, slots=True)
class ProximityResult:
    """Coverage of the organizer's timeline by a participant track."""

    matched_points: int
    total_organizer_points: int
    proximity_score_pct: float
    is_completed: bool
    matched_segments: Tuple[MatchedSegment, ...] = ()


@dataclass(frozen=True, slots=True)
class CandidateRide:
    """A planned ride an uploaded activity may be attached to."""

    id: Hashable
    scheduled_at: datetime
    track_file_path: str
    name: str


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    """Best planned ride for an upload, with its score as a percentage."""

    ride_id: Hashable
    match_score_pct: float
    ride_name: str


@dataclass(frozen=True, slots=True)
class RouteComparisonConfig:
    """Thresholds for the detailed planned-vs-uploaded route comparison."""

    similarity_threshold_pct: float = ROUTE_SIMILARITY_THRESHOLD_PCT
    time_window_minutes: float = ROUTE_TIME_WINDOW_MINUTES
    minimum_track_points: int = ROUTE_MINIMUM_TRACK_POINTS
    max_distance_deviation_m: float = ROUTE_MAX_DISTANCE_DEVIATION_M


@dataclass(frozen=True, slots=True)
class RouteComparisonDetails:
    geometric_similarity: float = 0.0
    temporal_alignment: float = 0.0
    elevation_correlation: float = 0.0


@dataclass(frozen=True, slots=True)
class RouteComparisonResult:
    """Outcome of :func:`ride_matcher.comparison.compare_routes` (percent scale)."""

    similarity: float
    matched_points: int
    total_points: int
    time_window_match: bool
    is_valid: bool
    details: RouteComparisonDetails = field(default_factory=RouteComparisonDetails)
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ParticipantUpload:
    """A participant's stored track awaiting proximity verification."""

    participant_id: Hashable
    track_file_path: str


@dataclass(frozen=True, slots=True)
class ParticipantMatch:
    """Proximity verdict for one participant plus their own ride metrics."""

    ride_id: Hashable
    participant_id: Hashable
    track_file_path: str
    proximity: ProximityResult
    distance_km: Optional[float] = None
    moving_time_s: Optional[int] = None
    elevation_gain_m: Optional[float] = None
    average_speed_kmh: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.proximity.is_completed
