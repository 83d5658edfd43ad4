"""Render organizer and participant tracks with matched spans on a map."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union

import folium  # Using folium to build an interactive Leaflet map.

from .models import LatLon, MatchedSegment, ProximityResult, Track

PathLike = Union[str, Path]

_ORGANIZER_COLOR = "#1a9641"
_PARTICIPANT_COLOR = "#2c7bb6"
_MATCHED_COLOR = "#fdae61"
_UNMATCHED_COLOR = "#d73027"


def _latlon(track: Track) -> List[LatLon]:
    return [point.latlon for point in track.positioned_points]


def matched_spans(
    organizer: Track, segments: Sequence[MatchedSegment]
) -> List[List[LatLon]]:
    """Return organizer coordinates covered by each matched segment."""

    spans: List[List[LatLon]] = []
    for segment in segments:
        span = [
            point.latlon
            for point in organizer.points
            if point.has_position
            and point.timestamp is not None
            and segment.start_time <= point.timestamp <= segment.end_time
        ]
        if span:
            spans.append(span)
    return spans


def create_proximity_map(
    organizer: Track,
    participant: Track,
    result: ProximityResult,
    *,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create an interactive map of a proximity check.

    Args:
        organizer: Organizer track the participant was checked against.
        participant: Participant track.
        result: Output of :func:`ride_matcher.proximity.check_proximity`.
        output_html_path: Optional path to persist the map as an HTML file.

    Returns:
        A :class:`folium.Map` instance containing the overlay.

    Raises:
        ValueError: If the organizer track has no positioned points.
    """

    organizer_points = _latlon(organizer)
    if not organizer_points:
        raise ValueError("Organizer track has no coordinates to plot")
    participant_points = _latlon(participant)

    folium_map = folium.Map(
        location=organizer_points[0], zoom_start=14, control_scale=True
    )
    folium.PolyLine(
        organizer_points,
        color=_ORGANIZER_COLOR,
        weight=4,
        opacity=0.8,
        tooltip=organizer.name or "Organizer track",
    ).add_to(folium_map)
    if len(participant_points) >= 2:
        folium.PolyLine(
            participant_points,
            color=_PARTICIPANT_COLOR,
            weight=4,
            opacity=0.5,
            tooltip=participant.name or "Participant track",
        ).add_to(folium_map)

    for span in matched_spans(organizer, result.matched_segments):
        if len(span) < 2:
            continue
        folium.PolyLine(
            span,
            color=_MATCHED_COLOR,
            weight=6,
            opacity=0.9,
            tooltip="Matched section",
        ).add_to(folium_map)

    status_color = _MATCHED_COLOR if result.is_completed else _UNMATCHED_COLOR
    popup = folium.Popup(
        html=(
            f"<strong>Proximity score:</strong> {result.proximity_score_pct:.1f}% "
            f"({result.matched_points}/{result.total_organizer_points} points, "
            f"{'completed' if result.is_completed else 'not completed'})"
        ),
        max_width=300,
    )
    folium.CircleMarker(
        location=organizer_points[0],
        radius=7,
        color=status_color,
        fill=True,
        fill_color=status_color,
        tooltip="Start",
        popup=popup,
    ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_proximity_map", "matched_spans"]
