"""Central error types used across the application."""

from __future__ import annotations


class RideMatcherError(RuntimeError):
    """Base error for the ride matching engine."""


class ParseError(RideMatcherError):
    """Raised when GPX content cannot yield any usable track point."""


class TrackNotFoundError(RideMatcherError):
    """Raised when a repository cannot locate a stored track file."""


__all__ = [
    "RideMatcherError",
    "ParseError",
    "TrackNotFoundError",
]
