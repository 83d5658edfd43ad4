"""Parse GPX documents into normalized :class:`~ride_matcher.models.Track` objects.

Elements are matched on their local name so GPX 1.0, GPX 1.1 and files with
unusual namespace prefixes all parse the same way. Heart rate lives in vendor
extensions, so a fixed list of known element conventions is tried in order.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from os import PathLike
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from .errors import ParseError
from .models import Track, TrackPoint

LOGGER = logging.getLogger(__name__)

GARMIN_TPX_V1_NS = "http://www.garmin.com/xmlschemas/TrackPointExtension/v1"
GARMIN_TPX_V2_NS = "http://www.garmin.com/xmlschemas/TrackPointExtension/v2"
CLUETRUST_GPXDATA_NS = "http://www.cluetrust.com/XML/GPXDATA/1/0"

# (namespace, local name); a ``None`` namespace matches any namespace or none.
HEART_RATE_ELEMENTS: Tuple[Tuple[Optional[str], str], ...] = (
    (GARMIN_TPX_V1_NS, "hr"),
    (GARMIN_TPX_V2_NS, "hr"),
    (CLUETRUST_GPXDATA_NS, "hr"),
    (None, "hr"),
    (None, "heartrate"),
)

_FRACTION_RE = re.compile(r"\.(\d+)")
_UTF8_BOM = b"\xef\xbb\xbf"

PathInput = str | Path | PathLike[str]


def _split_tag(tag: object) -> Tuple[Optional[str], str]:
    """Return ``(namespace, local_name)`` for an ElementTree tag."""

    if not isinstance(tag, str):
        return None, ""
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return None, tag


def _local_name(element: Element) -> str:
    return _split_tag(element.tag)[1]


def _children_named(element: Element, local: str) -> Iterator[Element]:
    for child in element:
        if _local_name(child) == local:
            yield child


def _first_child_text(element: Element, local: str) -> Optional[str]:
    for child in _children_named(element, local):
        text = (child.text or "").strip()
        return text or None
    return None


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_local_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp keeping its own offset.

    Naive values stay naive. Returns ``None`` when unparsable.
    """

    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat only accepts 3 or 6 fractional digits on older interpreters.
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 GPX timestamp into an aware UTC datetime.

    Naive values are taken as UTC. Returns ``None`` when unparsable.
    """

    parsed = parse_local_timestamp(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _matches(element: Element, namespace: Optional[str], local: str) -> bool:
    el_namespace, el_local = _split_tag(element.tag)
    if el_local != local:
        return False
    return namespace is None or el_namespace == namespace


def extract_heart_rate(trackpoint: Element) -> Optional[int]:
    """Return the heart rate of a trackpoint using the first matching convention."""

    descendants = [el for el in trackpoint.iter() if el is not trackpoint]
    for namespace, local in HEART_RATE_ELEMENTS:
        for element in descendants:
            if not _matches(element, namespace, local):
                continue
            value = _parse_float(element.text)
            if value is None or value <= 0:
                return None
            return int(value)
    return None


def _coordinate(element: Element, attribute: str) -> float:
    value = _parse_float(element.get(attribute))
    return value if value is not None else math.nan


def _parse_point(element: Element) -> TrackPoint:
    return TrackPoint(
        latitude=_coordinate(element, "lat"),
        longitude=_coordinate(element, "lon"),
        elevation_m=_parse_float(_first_child_text(element, "ele")),
        timestamp=parse_timestamp(_first_child_text(element, "time")),
        heart_rate_bpm=extract_heart_rate(element),
    )


def _find_name(root: Element) -> Optional[str]:
    """Prefer the first track's name, then the first route's name."""

    for container in ("trk", "rte"):
        for element in root.iter():
            if _local_name(element) != container:
                continue
            name = _first_child_text(element, "name")
            if name:
                return name
            break
    return None


def _collect_point_elements(root: Element) -> List[Element]:
    trackpoints = [el for el in root.iter() if _local_name(el) == "trkpt"]
    if trackpoints:
        return trackpoints
    # Planned routes are often exported as <rte>/<rtept> only.
    return [el for el in root.iter() if _local_name(el) == "rtept"]


def _load_root(content: bytes | str) -> Element:
    if not isinstance(content, (bytes, bytearray, str)):
        raise ParseError(
            f"GPX content must be text or bytes, got {type(content).__name__}"
        )
    # Expat rejects anything ahead of the XML declaration.
    if isinstance(content, str):
        content = content.lstrip("\ufeff").lstrip()
    else:
        content = bytes(content)
        if content.startswith(_UTF8_BOM):
            content = content[len(_UTF8_BOM) :]
        content = content.lstrip()
    if not content:
        raise ParseError("GPX content is empty")
    try:
        return ET.fromstring(content)
    except ET.ParseError as exc:
        raise ParseError(f"GPX content is not well-formed XML: {exc}") from exc
    except DefusedXmlException as exc:
        raise ParseError(f"GPX content rejected as unsafe XML: {exc}") from exc


def parse_track(content: bytes | str) -> Track:
    """Parse raw GPX content into a :class:`Track` with derived metrics.

    Raises:
        ParseError: If the content is not well-formed XML text, or if it holds
            track points but none of them has a usable position.
    """

    root = _load_root(content)
    elements = _collect_point_elements(root)
    points = [_parse_point(element) for element in elements]
    if points and not any(point.has_position for point in points):
        raise ParseError(
            f"GPX content has {len(points)} track points but none with valid coordinates"
        )
    skipped = sum(1 for point in points if not point.has_position)
    if skipped:
        LOGGER.debug("Kept %d track points with unparsable coordinates", skipped)
    track = Track.from_points(points, name=_find_name(root))
    LOGGER.debug(
        "Parsed GPX track name=%r points=%d distance_km=%s",
        track.name,
        len(track.points),
        track.distance_km,
    )
    return track


def parse_track_file(path: PathInput) -> Track:
    """Read and parse a GPX file from disk."""

    data = Path(path).read_bytes()
    return parse_track(data)


__all__ = [
    "HEART_RATE_ELEMENTS",
    "extract_heart_rate",
    "parse_local_timestamp",
    "parse_timestamp",
    "parse_track",
    "parse_track_file",
]
