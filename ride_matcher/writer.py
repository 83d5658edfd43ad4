"""Serialize tracks back to GPX 1.1.

Only the fields the parser reads are written: name, coordinates, elevation,
time and Garmin TrackPointExtension heart rate. Documents are built with the
standard ElementTree; defusedxml only guards the parsing side.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET  # nosec B405 - used for writing only
from datetime import timezone
from os import PathLike
from pathlib import Path

from .models import Track
from .parser import GARMIN_TPX_V1_NS

GPX_NS = "http://www.topografix.com/GPX/1/1"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
ET.register_namespace("", GPX_NS)
ET.register_namespace("xsi", XSI_NS)
ET.register_namespace("gpxtpx", GARMIN_TPX_V1_NS)

PathInput = str | Path | PathLike[str]


def _gpx(tag: str) -> str:
    return f"{{{GPX_NS}}}{tag}"


def build_gpx_tree(track: Track, creator: str = "ride_matcher") -> ET.ElementTree:
    """Return an ElementTree holding ``track`` as a single-segment GPX track."""

    gpx = ET.Element(
        _gpx("gpx"),
        {
            "version": "1.1",
            "creator": creator,
            f"{{{XSI_NS}}}schemaLocation": (
                f"{GPX_NS} http://www.topografix.com/GPX/1/1/gpx.xsd"
            ),
        },
    )
    if track.start_time is not None:
        metadata = ET.SubElement(gpx, _gpx("metadata"))
        meta_time = ET.SubElement(metadata, _gpx("time"))
        meta_time.text = track.start_time.astimezone(timezone.utc).isoformat()

    trk = ET.SubElement(gpx, _gpx("trk"))
    if track.name:
        trk_name = ET.SubElement(trk, _gpx("name"))
        trk_name.text = track.name
    trkseg = ET.SubElement(trk, _gpx("trkseg"))

    for point in track.points:
        trkpt = ET.SubElement(
            trkseg,
            _gpx("trkpt"),
            {"lat": repr(point.latitude), "lon": repr(point.longitude)},
        )
        if point.elevation_m is not None:
            ele = ET.SubElement(trkpt, _gpx("ele"))
            ele.text = repr(point.elevation_m)
        if point.timestamp is not None:
            time_el = ET.SubElement(trkpt, _gpx("time"))
            time_el.text = point.timestamp.astimezone(timezone.utc).isoformat()
        if point.heart_rate_bpm is not None:
            extensions = ET.SubElement(trkpt, _gpx("extensions"))
            tpx = ET.SubElement(extensions, f"{{{GARMIN_TPX_V1_NS}}}TrackPointExtension")
            hr = ET.SubElement(tpx, f"{{{GARMIN_TPX_V1_NS}}}hr")
            hr.text = str(point.heart_rate_bpm)

    return ET.ElementTree(gpx)


def serialize_track(track: Track) -> bytes:
    """Return the GPX document for ``track`` as UTF-8 bytes."""

    tree = build_gpx_tree(track)
    return ET.tostring(tree.getroot(), encoding="utf-8", xml_declaration=True)


def write_track(track: Track, path: PathInput) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    build_gpx_tree(track).write(output_path, encoding="utf-8", xml_declaration=True)
    return output_path


__all__ = ["build_gpx_tree", "serialize_track", "write_track"]
