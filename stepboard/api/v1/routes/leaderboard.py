"""
Leaderboard Routes

Endpoints:
- /leaderboard - Ranked participants (optionally filtered)

Always answers with the best data available; stale rows are refreshed
in the background.
"""

from fastapi import APIRouter, Depends, Query

from stepboard.api.dependencies import get_leaderboard_service
from stepboard.features.leaderboard import (
    LeaderboardFilter,
    LeaderboardService,
    RankedLeaderboardRow,
    filter_leaderboard,
)

router = APIRouter()


@router.get("/leaderboard", response_model=list[RankedLeaderboardRow])
async def get_leaderboard(
    limit: int = Query(default=100, ge=1, le=1000),
    filter: LeaderboardFilter = Query(default=LeaderboardFilter.ORDERED),
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """
    Get the leaderboard.

    Each row carries its rank inside the selected filter. The default
    filter shuffles rows but keeps their overall rank.
    """
    rows = await service.fetch_leaderboard(limit=limit)
    return filter_leaderboard(rows, filter)
