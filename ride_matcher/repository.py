"""Track repository seam between the matching engine and caller-owned storage."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import RLock
from typing import (
    Dict,
    Hashable,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from cachetools import LRUCache

from .config import TRACK_CACHE_SIZE
from .errors import TrackNotFoundError
from .models import CandidateRide, Track
from .parser import PathInput, parse_track

LOGGER = logging.getLogger(__name__)

_TrackCacheKey = Tuple[str, int, int]


@runtime_checkable
class TrackRepository(Protocol):
    """Storage operations the matchers need; callers supply the implementation."""

    def get_candidate_rides(self, owner_id: Hashable) -> Sequence[CandidateRide]:
        """Return planned rides an upload by ``owner_id`` may belong to."""

    def get_track(self, track_file_path: str) -> Track:
        """Load and parse a stored track; raise when missing or unparsable."""

    def get_organizer_track(self, ride_id: Hashable) -> Optional[Track]:
        """Return the organizer's recorded track for a ride, if one exists."""


class FileTrackRepository:
    """Repository backed by GPX files on the local file system.

    Parsed tracks are memoized per instance, keyed by resolved path and file
    modification time so edits on disk are picked up.
    """

    def __init__(
        self,
        base_dir: Optional[PathInput] = None,
        *,
        rides: Optional[Mapping[Hashable, Iterable[CandidateRide]]] = None,
        organizer_tracks: Optional[Mapping[Hashable, str]] = None,
        cache_size: int = TRACK_CACHE_SIZE,
    ) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._rides: Dict[Hashable, Tuple[CandidateRide, ...]] = {
            owner: tuple(items) for owner, items in (rides or {}).items()
        }
        self._organizer_tracks: Dict[Hashable, str] = dict(organizer_tracks or {})
        self._cache: LRUCache[_TrackCacheKey, Track] = LRUCache(
            maxsize=max(1, cache_size)
        )
        self._lock = RLock()

    def resolve(self, track_file_path: PathInput) -> Path:
        path = Path(track_file_path)
        if not path.is_absolute() and self._base_dir is not None:
            path = self._base_dir / path
        return path

    def get_candidate_rides(self, owner_id: Hashable) -> Sequence[CandidateRide]:
        return self._rides.get(owner_id, ())

    def get_track(self, track_file_path: str) -> Track:
        path = self.resolve(track_file_path)
        try:
            stat = path.stat()
        except FileNotFoundError as exc:
            raise TrackNotFoundError(f"Track file not found: {path}") from exc
        key: _TrackCacheKey = (str(path.resolve()), stat.st_mtime_ns, stat.st_size)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            LOGGER.debug("Using cached track for %s", path)
            return cached

        track = parse_track(path.read_bytes())
        with self._lock:
            self._cache[key] = track
        return track

    def get_organizer_track(self, ride_id: Hashable) -> Optional[Track]:
        track_path = self._organizer_tracks.get(ride_id)
        if track_path is None:
            return None
        return self.get_track(track_path)

    def clear(self) -> None:
        """Empty the parsed-track cache (primarily for testing)."""
        with self._lock:
            self._cache.clear()


__all__ = ["FileTrackRepository", "TrackRepository"]
