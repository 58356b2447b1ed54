"""
Leaderboard schemas.

Pydantic models for leaderboard rows.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class SyncStatus(str, Enum):
    READY = "ready"
    REFRESHING = "refreshing"
    ERROR = "error"
    STALE = "stale"


class LeaderboardFilter(str, Enum):
    DEFAULT = "default"   # shuffled, ranks kept
    WOMEN = "women"
    MEN = "men"
    ORDERED = "ordered"


class LeaderboardRow(BaseModel):
    """One participant on the leaderboard."""

    participant_id: str
    name: str
    email: str
    photo: Optional[str] = None
    gender: Optional[str] = None
    total_steps: int
    last_synced_at: Optional[datetime] = None
    is_refreshing: bool
    sync_status: SyncStatus
    token_expired: bool = False


class RankedLeaderboardRow(LeaderboardRow):
    """Row with its rank inside the selected filter."""

    original_rank: int
    original_index: int
