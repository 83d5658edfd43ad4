"""Service layer package.

Exports high-level services consumed by orchestration / presentation layers.
"""

from .participant_service import ParticipantMatchService

__all__ = ["ParticipantMatchService"]
