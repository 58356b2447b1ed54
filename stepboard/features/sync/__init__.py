"""
Step sync module.

Provides:
- SyncCoordinator: batch refresh and background (fire-and-forget) sync
- PendingSyncSet: at-most-one in-flight sync per participant
- RefreshStats: per-batch outcome
"""

from .pending import PendingSyncSet
from .service import SyncCoordinator, RefreshStats, FailedParticipant

__all__ = [
    "SyncCoordinator",
    "RefreshStats",
    "FailedParticipant",
    "PendingSyncSet",
]
