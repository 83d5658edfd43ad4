"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable GPX/track factories so the
parser and matcher tests do not duplicate fixture code.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ride_matcher.models import Track, TrackPoint


UTC = timezone.utc
RIDE_START = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)

# Degrees of latitude per metre (mean Earth radius 6371 km).
DEG_PER_M_LAT = 1.0 / 111194.93

GPX_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<gpx version="1.1" creator="tests" '
    'xmlns="http://www.topografix.com/GPX/1/1" '
    'xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1" '
    'xmlns:ns3="http://www.garmin.com/xmlschemas/TrackPointExtension/v1" '
    'xmlns:tpx2="http://www.garmin.com/xmlschemas/TrackPointExtension/v2" '
    'xmlns:gpxdata="http://www.cluetrust.com/XML/GPXDATA/1/0">\n'
)

HR_TEMPLATES = {
    "garmin_v1": (
        "<extensions><gpxtpx:TrackPointExtension><gpxtpx:hr>{hr}</gpxtpx:hr>"
        "</gpxtpx:TrackPointExtension></extensions>"
    ),
    "garmin_ns3": (
        "<extensions><ns3:TrackPointExtension><ns3:hr>{hr}</ns3:hr>"
        "</ns3:TrackPointExtension></extensions>"
    ),
    "garmin_v2": (
        "<extensions><tpx2:TrackPointExtension><tpx2:hr>{hr}</tpx2:hr>"
        "</tpx2:TrackPointExtension></extensions>"
    ),
    "cluetrust": "<extensions><gpxdata:hr>{hr}</gpxdata:hr></extensions>",
    "plain": "<extensions><hr>{hr}</hr></extensions>",
    "heartrate": "<extensions><heartrate>{hr}</heartrate></extensions>",
}


# --- Factory helpers -------------------------------------------------
def make_gpx(
    points: Iterable[dict],
    *,
    name: Optional[str] = None,
    container: str = "trk",
    hr_style: str = "garmin_v1",
) -> str:
    """Build a GPX document; each point dict may hold lat/lon/ele/time/hr."""

    point_tag = "trkpt" if container == "trk" else "rtept"
    body = []
    for point in points:
        children = []
        if point.get("ele") is not None:
            children.append(f"<ele>{point['ele']}</ele>")
        if point.get("time") is not None:
            value = point["time"]
            text = value.isoformat().replace("+00:00", "Z") if isinstance(value, datetime) else value
            children.append(f"<time>{text}</time>")
        if point.get("hr") is not None:
            children.append(HR_TEMPLATES[hr_style].format(hr=point["hr"]))
        body.append(
            f'<{point_tag} lat="{point["lat"]}" lon="{point["lon"]}">'
            + "".join(children)
            + f"</{point_tag}>"
        )
    name_el = f"<name>{name}</name>" if name else ""
    if container == "trk":
        inner = f"<trk>{name_el}<trkseg>{''.join(body)}</trkseg></trk>"
    else:
        inner = f"<rte>{name_el}{''.join(body)}</rte>"
    return GPX_HEADER + inner + "\n</gpx>\n"


def make_line_track(
    count: int,
    *,
    lat0: float = 51.5,
    lon0: float = -0.1,
    step_m: float = 100.0,
    east_offset_deg: float = 0.0,
    start: Optional[datetime] = RIDE_START,
    interval_s: float = 60.0,
    elevations: Optional[Sequence[float]] = None,
    name: Optional[str] = None,
) -> Track:
    """Return a track heading due north with evenly spaced, timed samples."""

    points = []
    for idx in range(count):
        timestamp = start + timedelta(seconds=idx * interval_s) if start else None
        points.append(
            TrackPoint(
                latitude=lat0 + idx * step_m * DEG_PER_M_LAT,
                longitude=lon0 + east_offset_deg,
                elevation_m=elevations[idx] if elevations is not None else None,
                timestamp=timestamp,
            )
        )
    return Track.from_points(points, name=name)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def gpx_builder():
    return make_gpx


@pytest.fixture
def line_track():
    return make_line_track


@pytest.fixture
def sample_gpx() -> str:
    return make_gpx(
        [
            {"lat": 51.5000, "lon": -0.1000, "ele": 10.0, "time": "2024-05-01T09:00:00Z", "hr": 120},
            {"lat": 51.5010, "lon": -0.1000, "ele": 15.0, "time": "2024-05-01T09:01:00Z", "hr": 130},
            {"lat": 51.5020, "lon": -0.1000, "ele": 12.0, "time": "2024-05-01T09:02:00Z", "hr": 141},
        ],
        name="Morning Loop",
    )
