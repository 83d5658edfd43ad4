"""Command-line access to the track parser and matchers.

Examples::

    python -m ride_matcher summary ride.gpx
    python -m ride_matcher proximity organizer.gpx participant.gpx --map out.html
    python -m ride_matcher match upload.gpx --rides rides.json
    python -m ride_matcher participants organizer.gpx p1.gpx p2.gpx --report r.xlsx
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .auto_match import RideAutoMatcher
from .comparison import compare_routes
from .config import AUTO_MATCH_THRESHOLD
from .errors import RideMatcherError
from .geo import initial_bearing_deg
from .models import CandidateRide, ParticipantUpload, ProximityConfig, Track
from .parser import parse_local_timestamp, parse_timestamp, parse_track_file
from .proximity import check_proximity
from .repository import FileTrackRepository
from .services import ParticipantMatchService
from .similarity import route_similarity
from .utils import json_dumps_sorted

LOGGER = logging.getLogger("ride_matcher.cli")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _emit(payload: Any) -> None:
    print(json_dumps_sorted(payload, indent=2))


def track_summary(track: Track) -> Dict[str, Any]:
    """Return the derived metrics of a track without its point list."""

    positioned = track.positioned_points
    heading: Optional[float] = None
    if len(positioned) >= 2:
        first, last = positioned[0], positioned[-1]
        heading = initial_bearing_deg(
            first.latitude, first.longitude, last.latitude, last.longitude
        )
    return {
        "name": track.name,
        "points": len(track.points),
        "distance_km": track.distance_km,
        "total_duration_s": track.total_duration_s,
        "moving_time_s": track.moving_time_s,
        "elevation_gain_m": track.elevation_gain_m,
        "average_speed_kmh": track.average_speed_kmh,
        "average_heart_rate_bpm": track.average_heart_rate_bpm,
        "max_heart_rate_bpm": track.max_heart_rate_bpm,
        "start_time": track.start_time,
        "start_to_finish_bearing_deg": heading,
    }


def load_candidate_rides(path: Path) -> tuple[List[CandidateRide], Dict[Any, str]]:
    """Read candidate rides (and optional organizer tracks) from a JSON list.

    ``scheduled_at`` keeps its UTC offset; naive values stay naive so the
    matcher reads them in ``MATCH_TIMEZONE``.
    """

    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except ValueError as exc:
            raise RideMatcherError(f"Invalid rides JSON {path}: {exc}") from exc
    if not isinstance(payload, list):
        raise RideMatcherError("Rides JSON must contain a list of ride objects")

    rides: List[CandidateRide] = []
    organizer_tracks: Dict[Any, str] = {}
    for entry in payload:
        try:
            scheduled_at = parse_local_timestamp(str(entry["scheduled_at"]))
            if scheduled_at is None:
                raise ValueError(f"invalid scheduled_at {entry['scheduled_at']!r}")
            ride = CandidateRide(
                id=entry["id"],
                scheduled_at=scheduled_at,
                track_file_path=str(entry["track_file_path"]),
                name=str(entry.get("name") or entry["id"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RideMatcherError(f"Invalid ride entry {entry!r}: {exc}") from exc
        rides.append(ride)
        if entry.get("organizer_track_path"):
            organizer_tracks[ride.id] = str(entry["organizer_track_path"])
    return rides, organizer_tracks


def _cmd_summary(args: argparse.Namespace) -> int:
    _emit(track_summary(parse_track_file(args.gpx)))
    return 0


def _cmd_similarity(args: argparse.Namespace) -> int:
    score = route_similarity(parse_track_file(args.first), parse_track_file(args.second))
    _emit({"score": score})
    return 0


def _proximity_config(args: argparse.Namespace) -> ProximityConfig:
    defaults = ProximityConfig()
    return ProximityConfig(
        proximity_radius_m=(
            args.radius if args.radius is not None else defaults.proximity_radius_m
        ),
        time_window_s=args.window if args.window is not None else defaults.time_window_s,
        min_match_percent=(
            args.threshold if args.threshold is not None else defaults.min_match_percent
        ),
    )


def _cmd_proximity(args: argparse.Namespace) -> int:
    organizer = parse_track_file(args.organizer)
    participant = parse_track_file(args.participant)
    result = check_proximity(organizer, participant, _proximity_config(args))
    if args.map is not None:
        from .visualization import create_proximity_map

        create_proximity_map(organizer, participant, result, output_html_path=args.map)
        LOGGER.info("Saved proximity map to %s", args.map)
    _emit(result)
    return 0


def _cmd_compare(args: argparse.Namespace) -> int:
    planned_start = parse_timestamp(args.planned_start)
    if planned_start is None:
        LOGGER.error("Invalid --planned-start timestamp: %s", args.planned_start)
        return 2
    result = compare_routes(
        parse_track_file(args.planned), parse_track_file(args.uploaded), planned_start
    )
    _emit(result)
    return 0


def _cmd_match(args: argparse.Namespace) -> int:
    rides, organizer_tracks = load_candidate_rides(args.rides)
    repository = FileTrackRepository(
        args.rides.parent, organizer_tracks=organizer_tracks
    )
    matcher = RideAutoMatcher(repository, threshold=args.threshold)
    candidate = matcher.match_upload(parse_track_file(args.upload), rides)
    _emit({"match": candidate})
    return 0


def _cmd_participants(args: argparse.Namespace) -> int:
    uploads = [
        ParticipantUpload(participant_id=path.stem, track_file_path=str(path))
        for path in args.participants
    ]
    service = ParticipantMatchService(proximity_config=_proximity_config(args))
    matches = service.process_for_ride(args.ride_id, str(args.organizer), uploads)
    if args.report is not None:
        from .report import write_participant_report

        write_participant_report(args.report, matches)
    _emit(matches)
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    from .writer import write_track

    output = write_track(parse_track_file(args.gpx), args.output)
    LOGGER.info("Wrote normalized GPX to %s", output)
    return 0


def _add_proximity_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--radius", type=float, help="Proximity radius in metres")
    parser.add_argument("--window", type=float, help="Time window in seconds")
    parser.add_argument(
        "--threshold", type=float, help="Completion threshold in percent"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ride-matcher",
        description="Parse GPX tracks and verify group ride participation.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("summary", help="Print derived metrics of a GPX file")
    summary.add_argument("gpx", type=Path)
    summary.set_defaults(func=_cmd_summary)

    similarity = sub.add_parser("similarity", help="Score two whole routes (0-1)")
    similarity.add_argument("first", type=Path)
    similarity.add_argument("second", type=Path)
    similarity.set_defaults(func=_cmd_similarity)

    proximity = sub.add_parser(
        "proximity", help="Check whether a participant followed the organizer"
    )
    proximity.add_argument("organizer", type=Path)
    proximity.add_argument("participant", type=Path)
    _add_proximity_options(proximity)
    proximity.add_argument("--map", type=Path, help="Write an HTML map overlay")
    proximity.set_defaults(func=_cmd_proximity)

    compare = sub.add_parser(
        "compare", help="Detailed comparison of an upload with a planned route"
    )
    compare.add_argument("planned", type=Path)
    compare.add_argument("uploaded", type=Path)
    compare.add_argument(
        "--planned-start",
        required=True,
        help="ISO timestamp of the planned ride start",
    )
    compare.set_defaults(func=_cmd_compare)

    match = sub.add_parser("match", help="Attach an upload to a same-day planned ride")
    match.add_argument("upload", type=Path)
    match.add_argument(
        "--rides",
        type=Path,
        required=True,
        help=(
            "JSON list of rides with id, scheduled_at, track_file_path, name and "
            "optional organizer_track_path (paths relative to the JSON file)"
        ),
    )
    match.add_argument(
        "--threshold",
        type=float,
        default=AUTO_MATCH_THRESHOLD,
        help=f"Minimum similarity (default: {AUTO_MATCH_THRESHOLD})",
    )
    match.set_defaults(func=_cmd_match)

    participants = sub.add_parser(
        "participants", help="Check several participants against one organizer"
    )
    participants.add_argument("organizer", type=Path)
    participants.add_argument("participants", type=Path, nargs="+")
    participants.add_argument("--ride-id", default="ride", help="Ride identifier")
    _add_proximity_options(participants)
    participants.add_argument("--report", type=Path, help="Write an Excel report")
    participants.set_defaults(func=_cmd_participants)

    export = sub.add_parser("export", help="Re-write a GPX file in normalized form")
    export.add_argument("gpx", type=Path)
    export.add_argument("output", type=Path)
    export.set_defaults(func=_cmd_export)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.log_level)
    try:
        return int(args.func(args))
    except (RideMatcherError, OSError) as exc:
        LOGGER.error("%s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
