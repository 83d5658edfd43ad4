"""Participant completion service.

Checks every pending participant upload for a ride against the organizer's
recorded track. Each participant is independent: one unreadable file is
logged and skipped without affecting the others.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
from typing import Hashable, List, Optional, Sequence

from ..config import PARTICIPANT_MAX_WORKERS
from ..errors import RideMatcherError
from ..models import (
    ParticipantMatch,
    ParticipantUpload,
    ProximityConfig,
    Track,
)
from ..proximity import check_proximity
from ..repository import FileTrackRepository, TrackRepository


class ParticipantMatchService:
    def __init__(
        self,
        repository: Optional[TrackRepository] = None,
        proximity_config: Optional[ProximityConfig] = None,
        max_workers: int = PARTICIPANT_MAX_WORKERS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.repository: TrackRepository = repository or FileTrackRepository()
        self.proximity_config = proximity_config or ProximityConfig()
        self.max_workers = max(1, max_workers)
        self._log = logger or logging.getLogger(self.__class__.__name__)

    def match_participant(
        self,
        ride_id: Hashable,
        organizer_track: Track,
        upload: ParticipantUpload,
    ) -> ParticipantMatch:
        participant_track = self.repository.get_track(upload.track_file_path)
        result = check_proximity(
            organizer_track, participant_track, self.proximity_config
        )
        return ParticipantMatch(
            ride_id=ride_id,
            participant_id=upload.participant_id,
            track_file_path=upload.track_file_path,
            proximity=result,
            distance_km=participant_track.distance_km,
            moving_time_s=participant_track.moving_time_s,
            elevation_gain_m=participant_track.elevation_gain_m,
            average_speed_kmh=participant_track.average_speed_kmh,
        )

    def process(
        self,
        ride_id: Hashable,
        organizer_track: Track,
        uploads: Sequence[ParticipantUpload],
    ) -> List[ParticipantMatch]:
        """Return one match per readable upload, in input order."""

        if not uploads:
            self._log.info("No participants to match for ride %s", ride_id)
            return []

        self._log.info(
            "Processing %d participant tracks for ride %s", len(uploads), ride_id
        )

        def run(upload: ParticipantUpload) -> Optional[ParticipantMatch]:
            try:
                return self.match_participant(ride_id, organizer_track, upload)
            except (RideMatcherError, OSError) as exc:
                self._log.warning(
                    "Error processing participant %s track %s: %s",
                    upload.participant_id,
                    upload.track_file_path,
                    exc,
                )
                return None

        workers = min(self.max_workers, len(uploads))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(run, uploads))

        matches = [match for match in outcomes if match is not None]
        for match in matches:
            self._log.info(
                "Participant %s proximity: %.1f%% (%s)",
                match.participant_id,
                match.proximity.proximity_score_pct,
                "COMPLETED" if match.is_completed else "incomplete",
            )
        skipped = len(uploads) - len(matches)
        if skipped:
            self._log.warning(
                "Skipped %d of %d participant tracks for ride %s",
                skipped,
                len(uploads),
                ride_id,
            )
        return matches

    def process_for_ride(
        self,
        ride_id: Hashable,
        organizer_track_path: str,
        uploads: Sequence[ParticipantUpload],
    ) -> List[ParticipantMatch]:
        """Load the organizer track through the repository, then :meth:`process`."""

        organizer_track = self.repository.get_track(organizer_track_path)
        return self.process(ride_id, organizer_track, uploads)
