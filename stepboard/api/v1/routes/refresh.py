"""
Refresh Routes

Endpoints:
- /refresh - Sync all participants (forced) or only stale ones, and
  wait for the result
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from stepboard.api.dependencies import get_async_db, get_sync_coordinator
from stepboard.config import settings
from stepboard.shared.clock import utcnow
from stepboard.features.participants import ParticipantRepository
from stepboard.features.leaderboard import evaluate_sync_state
from stepboard.features.sync import SyncCoordinator, RefreshStats

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class RefreshResponse(BaseModel):
    total_participants: int
    refreshed: int
    force_refresh: bool
    stats: dict


# =============================================================================
# Endpoints
# =============================================================================

@router.api_route("/refresh", methods=["GET", "POST"], response_model=RefreshResponse)
async def refresh_participants(
    force_refresh: bool = Query(default=True, alias="forceRefresh"),
    db: AsyncSession = Depends(get_async_db),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """
    Refresh participants' step totals.

    forceRefresh=false limits the batch to participants whose last sync
    is older than the refresh throttle.
    """
    pairs = await ParticipantRepository(db).list_with_metrics()

    now = utcnow()
    throttle = timedelta(seconds=settings.refresh_steps_throttle_seconds)
    stuck_timeout = timedelta(seconds=settings.stuck_refresh_timeout_seconds)

    ids_to_refresh = [
        participant.id
        for participant, metrics in pairs
        if force_refresh or evaluate_sync_state(metrics, now, throttle, stuck_timeout).needs_refresh
    ]

    stats = RefreshStats()
    if ids_to_refresh:
        stats = await coordinator.refresh_participants_by_ids(ids_to_refresh)

    logger.info(
        f"Refresh requested (force={force_refresh}): {len(ids_to_refresh)}/{len(pairs)} "
        f"participants, {stats.successful_syncs} ok, {stats.failed_syncs} failed"
    )

    return RefreshResponse(
        total_participants=len(pairs),
        refreshed=len(ids_to_refresh),
        force_refresh=force_refresh,
        stats=stats.to_dict(),
    )
