"""GPS track ingestion and ride matching engine."""

from .auto_match import RideAutoMatcher, match_upload
from .errors import ParseError, RideMatcherError, TrackNotFoundError
from .models import (
    CandidateRide,
    MatchCandidate,
    MatchedSegment,
    ProximityConfig,
    ProximityResult,
    Track,
    TrackPoint,
)
from .parser import parse_track, parse_track_file
from .proximity import check_participant_proximity, check_proximity
from .similarity import route_similarity

__all__ = [
    "CandidateRide",
    "MatchCandidate",
    "MatchedSegment",
    "ParseError",
    "ProximityConfig",
    "ProximityResult",
    "RideAutoMatcher",
    "RideMatcherError",
    "Track",
    "TrackNotFoundError",
    "TrackPoint",
    "check_participant_proximity",
    "check_proximity",
    "match_upload",
    "parse_track",
    "parse_track_file",
    "route_similarity",
]
