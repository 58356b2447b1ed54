"""
Daily-steps cache.

Keeps the last-known per-day breakdown so the participant detail view
doesn't hit Google Fit on every request.

Freshness policy (should_fetch_fresh_data):
- no cache row yet
- cache older than the TTL (1 hour by default)
- never fetched successfully and at least one recorded error, so a
  participant keeps retrying until the first success
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from stepboard.config import settings
from stepboard.shared.clock import utcnow
from stepboard.features.google_fit import DailySteps
from .models import DailyStepsCacheEntry
from .repository import DailyStepsCacheRepository

logger = logging.getLogger(__name__)


def should_fetch_fresh_data(
    record: Optional[DailyStepsCacheEntry],
    now: Optional[datetime] = None,
    ttl: Optional[timedelta] = None
) -> bool:
    """Decide whether the cached breakdown must be refetched."""
    if record is None or record.last_fetched_at is None:
        return True

    now = now or utcnow()
    ttl = ttl if ttl is not None else timedelta(seconds=settings.daily_cache_ttl_seconds)

    if now - record.last_fetched_at > ttl:
        return True

    return record.last_successful_fetch_at is None and (record.error_count or 0) > 0


class DailyStepsCache:
    """
    Daily breakdown cache for one session.

    Usage:
        cache = DailyStepsCache(db)
        record = await cache.get_cached_daily_steps(participant_id)
        if cache.should_fetch_fresh_data(record):
            ...
            await cache.set_cached_daily_steps(participant_id, days, success=True)
    """

    def __init__(self, db: AsyncSession, ttl_seconds: Optional[int] = None):
        self.db = db
        self.repository = DailyStepsCacheRepository(db)
        self.ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.daily_cache_ttl_seconds
        )

    async def get_cached_daily_steps(self, participant_id: str) -> DailyStepsCacheEntry | None:
        return await self.repository.get_by_participant_id(participant_id)

    async def set_cached_daily_steps(
        self,
        participant_id: str,
        daily_steps: list[DailySteps],
        success: bool,
        error: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Record a fetch outcome and commit."""
        await self.repository.record_fetch(
            participant_id,
            daily_steps,
            success=success,
            error=error,
            now=now or utcnow(),
        )
        await self.db.commit()

        if not success:
            logger.warning(f"Daily steps fetch failed for participant {participant_id}: {error}")

    def should_fetch_fresh_data(
        self,
        record: Optional[DailyStepsCacheEntry],
        now: Optional[datetime] = None
    ) -> bool:
        return should_fetch_fresh_data(record, now=now, ttl=self.ttl)
