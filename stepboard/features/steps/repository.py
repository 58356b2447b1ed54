"""
Step repositories.

Data access layer for StepsData and DailyStepsCacheEntry. Nothing here
commits; callers own the transaction.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from stepboard.shared.repository import BaseRepository
from stepboard.features.google_fit import DailySteps, StepSummary, SyncErrorKind
from .models import StepsData, DailyStepsCacheEntry, MetricsStatus


class StepsDataRepository(BaseRepository[StepsData]):
    """Repository for per-participant step metrics."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, StepsData)

    async def get_by_participant_id(self, participant_id: str) -> StepsData | None:
        return await self.get_by(participant_id=participant_id)

    async def upsert(self, participant_id: str, now: datetime, **values) -> None:
        """
        Set columns on the participant's row, creating it if missing.

        created_at is only written on insert.
        """
        await self.upsert_fields(
            "participant_id",
            insert_values=dict(participant_id=participant_id, created_at=now, **values),
            update_values=values,
        )

    async def mark_refreshing(self, participant_id: str, now: datetime) -> None:
        """Claim the row for a sync that is about to start."""
        await self.upsert(
            participant_id,
            now,
            status=MetricsStatus.REFRESHING.value,
            refresh_started_at=now,
        )

    async def record_success(
        self,
        participant_id: str,
        summary: StepSummary,
        now: datetime
    ) -> None:
        """Store fresh totals and clear any previous error."""
        await self.upsert(
            participant_id,
            now,
            steps=summary.total_steps,
            daily_steps=serialize_daily_steps(summary.daily_steps),
            daily_steps_updated_at=now,
            last_synced_at=now,
            updated_at=now,
            status=MetricsStatus.READY.value,
            error_message=None,
            error_kind=None,
            token_expired=False,
        )

    async def record_error(
        self,
        participant_id: str,
        message: str,
        kind: SyncErrorKind,
        now: datetime
    ) -> None:
        """Store a failed sync. Previous totals are kept."""
        await self.upsert(
            participant_id,
            now,
            status=MetricsStatus.ERROR.value,
            error_message=message,
            error_kind=kind.value,
            token_expired=kind is SyncErrorKind.TOKEN_EXPIRED,
            updated_at=now,
        )


class DailyStepsCacheRepository(BaseRepository[DailyStepsCacheEntry]):
    """Repository for cached daily breakdowns."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, DailyStepsCacheEntry)

    async def get_by_participant_id(self, participant_id: str) -> DailyStepsCacheEntry | None:
        return await self.get_by(participant_id=participant_id)

    async def record_fetch(
        self,
        participant_id: str,
        daily_steps: list[DailySteps],
        success: bool,
        error: Optional[str],
        now: datetime
    ) -> None:
        """
        Record a fetch attempt.

        A failed attempt bumps error_count and keeps the stored breakdown.
        """
        if success:
            values = dict(
                daily_steps=serialize_daily_steps(daily_steps),
                last_fetched_at=now,
                last_successful_fetch_at=now,
                error_count=0,
                last_error=None,
                updated_at=now,
            )
            first_values = values
        else:
            values = dict(
                last_fetched_at=now,
                error_count=DailyStepsCacheEntry.error_count + 1,
                last_error=error,
                updated_at=now,
            )
            first_values = dict(values, error_count=1, daily_steps=[])

        await self.upsert_fields(
            "participant_id",
            insert_values=dict(participant_id=participant_id, created_at=now, **first_values),
            update_values=values,
        )


def serialize_daily_steps(daily_steps: list[DailySteps]) -> list[dict]:
    return [day.to_dict() for day in daily_steps]


def deserialize_daily_steps(data: Optional[list]) -> list[DailySteps]:
    return [DailySteps.from_dict(item) for item in data or []]
