"""Attach an uploaded activity to the planned ride it most resembles.

Candidates are limited to rides scheduled on the upload's calendar day. Each
remaining ride's stored track is scored with :func:`route_similarity`; the
highest score at or above the threshold wins. Equal scores keep the
first-seen candidate, so callers control precedence through candidate order.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Hashable, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import AUTO_MATCH_THRESHOLD, MATCH_TIMEZONE
from .errors import RideMatcherError
from .models import CandidateRide, MatchCandidate, Track
from .repository import FileTrackRepository, TrackRepository
from .similarity import route_similarity

LOGGER = logging.getLogger(__name__)


def _resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("Unknown MATCH_TIMEZONE %r; using UTC calendar dates", name)
        return None


def _calendar_date(moment: datetime, zone: Optional[tzinfo]) -> date:
    if moment.tzinfo is not None and zone is not None:
        moment = moment.astimezone(zone)
    return moment.date()


def same_calendar_day(
    activity_start: datetime,
    scheduled_at: datetime,
    default_zone: Optional[tzinfo] = None,
) -> bool:
    """Return True when both moments fall on the same local calendar date.

    The ride's own time zone defines "local" when it has one; otherwise
    ``default_zone`` is used.
    """

    zone = scheduled_at.tzinfo or default_zone
    return _calendar_date(activity_start, zone) == _calendar_date(scheduled_at, zone)


class RideAutoMatcher:
    """Select the best same-day planned ride for an uploaded track."""

    def __init__(
        self,
        repository: Optional[TrackRepository] = None,
        *,
        threshold: float = AUTO_MATCH_THRESHOLD,
        timezone_name: Optional[str] = MATCH_TIMEZONE,
    ) -> None:
        self.repository: TrackRepository = repository or FileTrackRepository()
        self.threshold = threshold
        self._zone = _resolve_timezone(timezone_name)
        self._log = logging.getLogger(self.__class__.__name__)

    def same_day_candidates(
        self, uploaded_track: Track, candidates: Iterable[CandidateRide]
    ) -> List[CandidateRide]:
        start = uploaded_track.start_time
        if start is None:
            return []
        return [
            ride
            for ride in candidates
            if same_calendar_day(start, ride.scheduled_at, self._zone)
        ]

    def _load_candidate_track(self, ride: CandidateRide) -> Optional[Track]:
        """Return the planned track, falling back to the organizer's recording."""

        try:
            return self.repository.get_track(ride.track_file_path)
        except (RideMatcherError, OSError) as exc:
            self._log.warning(
                "Could not parse planned route for ride %s (%s): %s",
                ride.id,
                ride.track_file_path,
                exc,
            )
        try:
            fallback = self.repository.get_organizer_track(ride.id)
        except (RideMatcherError, OSError) as exc:
            self._log.warning(
                "Could not parse organizer track for ride %s: %s", ride.id, exc
            )
            return None
        if fallback is None:
            self._log.warning("No track available for ride %s; skipping", ride.id)
        else:
            self._log.info("Using organizer's recorded track for ride %s", ride.id)
        return fallback

    def match_upload(
        self, uploaded_track: Track, candidates: Sequence[CandidateRide]
    ) -> Optional[MatchCandidate]:
        """Return the best candidate scoring at least the threshold, else ``None``."""

        if uploaded_track.start_time is None:
            self._log.info("Upload has no timestamps; cannot pick same-day rides")
            return None
        same_day = self.same_day_candidates(uploaded_track, candidates)
        self._log.info(
            "Found %d of %d candidate rides on %s",
            len(same_day),
            len(candidates),
            uploaded_track.start_time.date().isoformat(),
        )

        best: Optional[MatchCandidate] = None
        best_score = 0.0
        for ride in same_day:
            planned = self._load_candidate_track(ride)
            if planned is None:
                continue
            score = route_similarity(uploaded_track, planned)
            self._log.info("Route similarity for %r: %.1f%%", ride.name, score * 100)
            # Strictly greater: the first candidate keeps ties.
            if score >= self.threshold and (best is None or score > best_score):
                best = MatchCandidate(
                    ride_id=ride.id,
                    match_score_pct=score * 100.0,
                    ride_name=ride.name,
                )
                best_score = score
        return best

    def match_for_owner(
        self, uploaded_track: Track, owner_id: Hashable
    ) -> Optional[MatchCandidate]:
        """Match against the rides the repository lists for ``owner_id``."""

        candidates = self.repository.get_candidate_rides(owner_id)
        return self.match_upload(uploaded_track, list(candidates))


def match_upload(
    uploaded_track: Track,
    candidates: Sequence[CandidateRide],
    repository: Optional[TrackRepository] = None,
    *,
    threshold: float = AUTO_MATCH_THRESHOLD,
) -> Optional[MatchCandidate]:
    """Functional wrapper around :meth:`RideAutoMatcher.match_upload`."""

    matcher = RideAutoMatcher(repository, threshold=threshold)
    return matcher.match_upload(uploaded_track, candidates)


__all__ = ["RideAutoMatcher", "match_upload", "same_calendar_day"]
