"""
Participant Routes

Endpoints:
- /participants/{participant_id}/daily - Daily step breakdown

The breakdown is served from the daily-steps cache while fresh. A fresh
fetch writes through to the metrics record, the participant's
credentials and the cache. If the fetch fails, the last good breakdown
is returned with a warning.

A fresh fetch claims the participant in the sync coordinator's in-flight
set. If a sync already holds the claim, the cached breakdown is returned
rather than refreshing the same credentials twice. With nothing cached
the route fetches anyway; Google does not rotate refresh tokens, so two
refresh grants for one participant leave both access tokens valid.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from stepboard.api.dependencies import get_async_db, get_sync_coordinator
from stepboard.shared.clock import utcnow
from stepboard.features.participants import Participant, ParticipantRepository
from stepboard.features.steps import (
    DailyStepsCache,
    DailyStepsCacheEntry,
    StepsDataRepository,
    serialize_daily_steps,
)
from stepboard.features.steps.schemas import DailyStepsResponse
from stepboard.features.sync import SyncCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()

STALE_CACHE_WARNING = "Data may be outdated due to sync failure"


@router.get("/participants/{participant_id}/daily", response_model=DailyStepsResponse)
async def get_participant_daily_steps(
    participant_id: str,
    db: AsyncSession = Depends(get_async_db),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Get a participant's per-day steps for the challenge window."""
    participant = await ParticipantRepository(db).get_by_id(participant_id)
    if not participant:
        raise HTTPException(status_code=404, detail="Participant not found")

    if not participant.has_refresh_token:
        raise HTTPException(
            status_code=400,
            detail="Participant is not linked to Google Fit"
        )

    cache = DailyStepsCache(db)
    cache_entry = await cache.get_cached_daily_steps(participant_id)

    if not cache.should_fetch_fresh_data(cache_entry) and cache_entry.daily_steps is not None:
        logger.info(f"Returning cached daily steps for participant {participant_id}")
        return DailyStepsResponse(
            participant_id=participant_id,
            daily_steps=cache_entry.daily_steps,
            from_cache=True,
        )

    with coordinator.pending.reserve([participant_id]) as claimed:
        if not claimed and cache_entry and cache_entry.daily_steps:
            logger.info(
                f"Sync in flight for participant {participant_id}, returning cached daily steps"
            )
            return DailyStepsResponse(
                participant_id=participant_id,
                daily_steps=cache_entry.daily_steps,
                from_cache=True,
            )
        return await _fetch_daily_steps(participant, db, cache, cache_entry, coordinator)


async def _fetch_daily_steps(
    participant: Participant,
    db: AsyncSession,
    cache: DailyStepsCache,
    cache_entry: Optional[DailyStepsCacheEntry],
    coordinator: SyncCoordinator,
) -> DailyStepsResponse:
    participant_id = participant.id
    tokens = participant.token_set()
    try:
        logger.info(f"Fetching fresh daily steps for participant {participant_id}")
        ensured = await coordinator.oauth.ensure_access_token(tokens)
        summary = await coordinator.fit_client.fetch_challenge_step_summary(ensured.access_token)
    except Exception as e:
        logger.error(f"Failed to fetch daily steps for participant {participant_id}: {e}")
        error_message = str(e) or "Failed to fetch daily steps"

        cached_days = list(cache_entry.daily_steps or []) if cache_entry else []
        await cache.set_cached_daily_steps(participant_id, [], success=False, error=error_message)

        if cached_days:
            logger.info(
                f"Returning cached daily steps for participant {participant_id} after fetch failure"
            )
            return DailyStepsResponse(
                participant_id=participant_id,
                daily_steps=cached_days,
                from_cache=True,
                warning=STALE_CACHE_WARNING,
            )

        raise HTTPException(status_code=500, detail=error_message)

    now = utcnow()
    await ParticipantRepository(db).update_credentials(participant_id, ensured.updated_tokens, now)
    await StepsDataRepository(db).record_success(participant_id, summary, now)
    # commits the whole write-through
    await cache.set_cached_daily_steps(participant_id, summary.daily_steps, success=True, now=now)

    return DailyStepsResponse(
        participant_id=participant_id,
        daily_steps=serialize_daily_steps(summary.daily_steps),
        from_cache=False,
    )
