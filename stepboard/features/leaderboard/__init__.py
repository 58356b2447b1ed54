"""
Leaderboard module.

Usage:
    from stepboard.features.leaderboard import LeaderboardService, filter_leaderboard
"""

from .schemas import LeaderboardRow, RankedLeaderboardRow, SyncStatus, LeaderboardFilter
from .service import LeaderboardService, RowSyncState, evaluate_sync_state, sort_rows
from .filters import filter_leaderboard

__all__ = [
    "LeaderboardRow",
    "RankedLeaderboardRow",
    "SyncStatus",
    "LeaderboardFilter",
    "LeaderboardService",
    "RowSyncState",
    "evaluate_sync_state",
    "sort_rows",
    "filter_leaderboard",
]
