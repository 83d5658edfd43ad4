"""Time-windowed proximity matching between an organizer and a participant.

Coverage is measured over the organizer's timeline: each timed organizer point
counts as matched when some participant sample lies within the time window and
the distance radius. A participant who rides much faster or slower than the
organizer therefore shows gaps.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np

from .geo import haversine_m_array
from .models import (
    MatchedSegment,
    ProximityConfig,
    ProximityResult,
    Track,
    TrackPoint,
)
from .parser import PathInput, parse_track_file

LOGGER = logging.getLogger(__name__)


def _epoch_seconds(points: Sequence[TrackPoint]) -> np.ndarray:
    return np.asarray(
        [point.timestamp.timestamp() for point in points if point.timestamp is not None],
        dtype=float,
    )


def _first_match_index(
    organizer_point: TrackPoint,
    organizer_time_s: float,
    participant_times: np.ndarray,
    participant_lats: np.ndarray,
    participant_lons: np.ndarray,
    config: ProximityConfig,
) -> Optional[int]:
    """Return the first participant index (scan order) near the organizer point."""

    in_window = np.abs(participant_times - organizer_time_s) <= config.time_window_s
    candidates = np.nonzero(in_window)[0]
    if candidates.size == 0:
        return None
    distances = haversine_m_array(
        organizer_point.latitude,
        organizer_point.longitude,
        participant_lats[candidates],
        participant_lons[candidates],
    )
    with np.errstate(invalid="ignore"):
        close = np.nonzero(distances <= config.proximity_radius_m)[0]
    if close.size == 0:
        return None
    return int(candidates[close[0]])


def _close_segment(
    segments: List[MatchedSegment], start: Optional[datetime], end: Optional[datetime]
) -> None:
    if start is None or end is None:
        return
    segments.append(
        MatchedSegment(
            start_time=start,
            end_time=end,
            duration_s=(end - start).total_seconds(),
        )
    )


def check_proximity(
    organizer_track: Track,
    participant_track: Track,
    config: Optional[ProximityConfig] = None,
) -> ProximityResult:
    """Decide whether the participant stayed near the organizer long enough.

    Only timestamped points take part. Returns a zero, not-completed result
    when either track has no timed points; never raises for empty tracks.
    """

    config = config or ProximityConfig()
    organizer_points = organizer_track.timed_points
    participant_points = participant_track.timed_points

    if not organizer_points or not participant_points:
        LOGGER.debug(
            "Proximity skipped: organizer timed points=%d participant timed points=%d",
            len(organizer_points),
            len(participant_points),
        )
        return ProximityResult(
            matched_points=0,
            total_organizer_points=len(organizer_points),
            proximity_score_pct=0.0,
            is_completed=False,
            matched_segments=(),
        )

    organizer_times = _epoch_seconds(organizer_points)
    participant_times = _epoch_seconds(participant_points)
    participant_lats = np.asarray([p.latitude for p in participant_points], dtype=float)
    participant_lons = np.asarray([p.longitude for p in participant_points], dtype=float)

    matched = 0
    segments: List[MatchedSegment] = []
    segment_start: Optional[datetime] = None
    segment_end: Optional[datetime] = None

    for point, time_s in zip(organizer_points, organizer_times):
        index = _first_match_index(
            point,
            float(time_s),
            participant_times,
            participant_lats,
            participant_lons,
            config,
        )
        if index is not None:
            matched += 1
            if segment_start is None:
                segment_start = point.timestamp
            segment_end = point.timestamp
            continue
        _close_segment(segments, segment_start, segment_end)
        segment_start = None
        segment_end = None
    _close_segment(segments, segment_start, segment_end)

    total = len(organizer_points)
    score = matched / total * 100.0
    is_completed = score >= config.min_match_percent

    LOGGER.info(
        "Proximity: organizer=%d participant=%d matched=%d score=%.2f%% completed=%s "
        "segments=%d",
        total,
        len(participant_points),
        matched,
        score,
        is_completed,
        len(segments),
    )
    return ProximityResult(
        matched_points=matched,
        total_organizer_points=total,
        proximity_score_pct=score,
        is_completed=is_completed,
        matched_segments=tuple(segments),
    )


def check_participant_proximity(
    organizer_path: PathInput,
    participant_path: PathInput,
    config: Optional[ProximityConfig] = None,
) -> ProximityResult:
    """Parse both GPX files and run :func:`check_proximity` on them."""

    organizer_track = parse_track_file(organizer_path)
    participant_track = parse_track_file(participant_path)
    return check_proximity(organizer_track, participant_track, config)


__all__ = ["check_participant_proximity", "check_proximity"]
