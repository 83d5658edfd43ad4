"""Tests for attaching uploads to same-day planned rides."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, Hashable, List, Optional, Sequence, Union

import pytest

from ride_matcher.auto_match import RideAutoMatcher, match_upload, same_calendar_day
from ride_matcher.errors import ParseError, TrackNotFoundError
from ride_matcher.models import CandidateRide, Track
from ride_matcher.repository import TrackRepository

UTC = timezone.utc
KM_EAST_AT_51_5 = 1000.0 / (111194.93 * math.cos(math.radians(51.5)))


class FakeRepository:
    """In-memory repository; a stored exception is raised on lookup."""

    def __init__(
        self,
        tracks: Dict[str, Union[Track, Exception]],
        organizer_tracks: Optional[Dict[Hashable, Track]] = None,
        rides: Optional[Dict[Hashable, List[CandidateRide]]] = None,
    ) -> None:
        self.tracks = tracks
        self.organizer_tracks = organizer_tracks or {}
        self.rides = rides or {}
        self.requested: List[str] = []

    def get_candidate_rides(self, owner_id: Hashable) -> Sequence[CandidateRide]:
        return self.rides.get(owner_id, [])

    def get_track(self, track_file_path: str) -> Track:
        self.requested.append(track_file_path)
        value = self.tracks.get(track_file_path)
        if value is None:
            raise TrackNotFoundError(track_file_path)
        if isinstance(value, Exception):
            raise value
        return value

    def get_organizer_track(self, ride_id: Hashable) -> Optional[Track]:
        return self.organizer_tracks.get(ride_id)


def _ride(ride_id: str, scheduled_at: datetime, path: Optional[str] = None) -> CandidateRide:
    return CandidateRide(
        id=ride_id,
        scheduled_at=scheduled_at,
        track_file_path=path or f"{ride_id}.gpx",
        name=f"Ride {ride_id}",
    )


@pytest.fixture
def upload(line_track) -> Track:
    return line_track(20)


def test_fake_repository_satisfies_protocol() -> None:
    assert isinstance(FakeRepository({}), TrackRepository)


def test_matches_same_day_ride(upload: Track) -> None:
    rides = [
        _ride("tomorrow", datetime(2024, 5, 2, 9, 0, tzinfo=UTC)),
        _ride("today", datetime(2024, 5, 1, 8, 30, tzinfo=UTC)),
    ]
    repo = FakeRepository({"tomorrow.gpx": upload, "today.gpx": upload})

    match = RideAutoMatcher(repo).match_upload(upload, rides)

    assert match is not None
    assert match.ride_id == "today"
    assert match.ride_name == "Ride today"
    assert match.match_score_pct == pytest.approx(100.0)
    # Other days are never loaded.
    assert repo.requested == ["today.gpx"]


def test_no_same_day_rides_returns_none(upload: Track) -> None:
    rides = [_ride("later", datetime(2024, 5, 3, 9, 0, tzinfo=UTC))]
    repo = FakeRepository({"later.gpx": upload})

    assert RideAutoMatcher(repo).match_upload(upload, rides) is None
    assert repo.requested == []


def test_score_below_threshold_returns_none(upload: Track, line_track) -> None:
    shifted = line_track(20, east_offset_deg=KM_EAST_AT_51_5)
    rides = [_ride("a", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))]
    repo = FakeRepository({"a.gpx": shifted})

    assert RideAutoMatcher(repo).match_upload(upload, rides) is None

    lenient = RideAutoMatcher(repo, threshold=0.6).match_upload(upload, rides)
    assert lenient is not None
    assert lenient.match_score_pct == pytest.approx(65.0, abs=0.2)


def test_tie_keeps_first_candidate(upload: Track) -> None:
    rides = [
        _ride("first", datetime(2024, 5, 1, 9, 0, tzinfo=UTC)),
        _ride("second", datetime(2024, 5, 1, 10, 0, tzinfo=UTC)),
    ]
    repo = FakeRepository({"first.gpx": upload, "second.gpx": upload})

    match = RideAutoMatcher(repo).match_upload(upload, rides)

    assert match is not None
    assert match.ride_id == "first"


def test_better_later_candidate_wins(upload: Track, line_track) -> None:
    shifted = line_track(20, east_offset_deg=KM_EAST_AT_51_5)
    rides = [
        _ride("shifted", datetime(2024, 5, 1, 9, 0, tzinfo=UTC)),
        _ride("exact", datetime(2024, 5, 1, 9, 0, tzinfo=UTC)),
    ]
    repo = FakeRepository({"shifted.gpx": shifted, "exact.gpx": upload})

    match = RideAutoMatcher(repo, threshold=0.5).match_upload(upload, rides)

    assert match is not None
    assert match.ride_id == "exact"


def test_unparsable_candidate_is_skipped(
    upload: Track, caplog: pytest.LogCaptureFixture
) -> None:
    rides = [
        _ride("broken", datetime(2024, 5, 1, 9, 0, tzinfo=UTC)),
        _ride("good", datetime(2024, 5, 1, 9, 0, tzinfo=UTC)),
    ]
    repo = FakeRepository(
        {"broken.gpx": ParseError("not well-formed"), "good.gpx": upload}
    )

    with caplog.at_level(logging.WARNING, logger="RideAutoMatcher"):
        match = RideAutoMatcher(repo).match_upload(upload, rides)

    assert match is not None
    assert match.ride_id == "good"
    assert "Could not parse planned route for ride broken" in caplog.text


def test_missing_planned_track_falls_back_to_organizer(upload: Track) -> None:
    rides = [_ride("r1", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))]
    repo = FakeRepository(
        {"r1.gpx": ParseError("bad")}, organizer_tracks={"r1": upload}
    )

    match = RideAutoMatcher(repo).match_upload(upload, rides)

    assert match is not None
    assert match.ride_id == "r1"


def test_os_error_is_skipped(upload: Track) -> None:
    rides = [_ride("r1", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))]
    repo = FakeRepository({"r1.gpx": PermissionError("denied")})

    assert RideAutoMatcher(repo).match_upload(upload, rides) is None


def test_upload_without_timestamps_returns_none(line_track) -> None:
    untimed = line_track(20, start=None)
    rides = [_ride("r1", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))]
    repo = FakeRepository({"r1.gpx": untimed})

    assert RideAutoMatcher(repo).match_upload(untimed, rides) is None


def test_match_for_owner_uses_repository_rides(upload: Track) -> None:
    ride = _ride("club", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))
    repo = FakeRepository({"club.gpx": upload}, rides={"owner-1": [ride]})
    matcher = RideAutoMatcher(repo)

    match = matcher.match_for_owner(upload, "owner-1")
    assert match is not None
    assert match.ride_id == "club"
    assert matcher.match_for_owner(upload, "someone-else") is None


def test_functional_match_upload(upload: Track) -> None:
    rides = [_ride("r1", datetime(2024, 5, 1, 9, 0, tzinfo=UTC))]
    repo = FakeRepository({"r1.gpx": upload})

    match = match_upload(upload, rides, repo, threshold=0.9)

    assert match is not None
    assert match.ride_id == "r1"


def test_ride_timezone_defines_calendar_day(line_track) -> None:
    late_upload = line_track(20, start=datetime(2024, 5, 1, 23, 30, tzinfo=UTC))
    plus_two = timezone(timedelta(hours=2))
    rides = [_ride("morning", datetime(2024, 5, 2, 8, 0, tzinfo=plus_two))]
    repo = FakeRepository({"morning.gpx": late_upload})

    match = RideAutoMatcher(repo).match_upload(late_upload, rides)

    assert match is not None
    assert match.ride_id == "morning"


def test_same_calendar_day_rules() -> None:
    upload_start = datetime(2024, 5, 1, 23, 30, tzinfo=UTC)

    assert same_calendar_day(upload_start, datetime(2024, 5, 1, 7, 0))
    assert not same_calendar_day(upload_start, datetime(2024, 5, 2, 7, 0))
    plus_two = timezone(timedelta(hours=2))
    assert same_calendar_day(upload_start, datetime(2024, 5, 2, 7, 0), plus_two)
    assert same_calendar_day(
        upload_start, datetime(2024, 5, 2, 7, 0, tzinfo=plus_two)
    )


def test_unknown_timezone_name_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="ride_matcher.auto_match"):
        RideAutoMatcher(FakeRepository({}), timezone_name="Nowhere/Atlantis")
    assert "Unknown MATCH_TIMEZONE" in caplog.text
