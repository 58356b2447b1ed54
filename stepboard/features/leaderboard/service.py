"""
Leaderboard reader.

Joins participants with their synced metrics, decides per row whether
the data is stale, and hands stale participants to the sync coordinator
in the background. Reading the leaderboard therefore triggers writes.

Row status rules:
- needs refresh: never synced, or last sync older than the throttle
  interval (30 min by default)
- timed out: status "refreshing" for more than the stuck-refresh
  timeout (60 s); such rows are refreshed again
- sync_status: "stale" if timed out or needing refresh, else the stored
  status
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from stepboard.config import settings
from stepboard.shared.clock import utcnow
from stepboard.features.participants.repository import ParticipantRepository
from stepboard.features.steps.models import MetricsStatus, StepsData
from .schemas import LeaderboardRow, SyncStatus

if TYPE_CHECKING:
    from stepboard.features.sync import SyncCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowSyncState:
    last_synced_at: Optional[datetime]
    needs_refresh: bool
    timed_out: bool
    is_refreshing: bool
    sync_status: SyncStatus

    @property
    def should_queue(self) -> bool:
        return self.needs_refresh or self.timed_out


def evaluate_sync_state(
    metrics: Optional[StepsData],
    now: datetime,
    throttle: timedelta,
    stuck_timeout: timedelta
) -> RowSyncState:
    """Derive the leaderboard view of one metrics record."""
    last_synced_at = None
    status = MetricsStatus.READY.value
    refresh_started_at = None

    if metrics is not None:
        last_synced_at = metrics.last_synced_at or metrics.updated_at
        status = metrics.status or MetricsStatus.READY.value
        refresh_started_at = metrics.refresh_started_at

    needs_refresh = last_synced_at is None or now - last_synced_at > throttle

    since_refresh_start = now - refresh_started_at if refresh_started_at else None
    refreshing = status == MetricsStatus.REFRESHING.value
    timed_out = (
        refreshing
        and since_refresh_start is not None
        and since_refresh_start > stuck_timeout
    )
    is_refreshing = (
        refreshing
        and not timed_out
        and (since_refresh_start is None or since_refresh_start < throttle)
    )

    if timed_out or needs_refresh:
        sync_status = SyncStatus.STALE
    elif status == MetricsStatus.ERROR.value:
        sync_status = SyncStatus.ERROR
    else:
        sync_status = SyncStatus(status)

    return RowSyncState(
        last_synced_at=last_synced_at,
        needs_refresh=needs_refresh,
        timed_out=timed_out,
        is_refreshing=is_refreshing,
        sync_status=sync_status,
    )


def name_collation_key(name: str) -> tuple[str, str]:
    """
    Locale-style name order: letters compare case-insensitively first,
    and on an exact case-insensitive tie lowercase sorts before uppercase.
    """
    return name.casefold(), name.swapcase()


def sort_rows(rows: list[LeaderboardRow]) -> list[LeaderboardRow]:
    """Most steps first; ties by name."""
    return sorted(rows, key=lambda row: (-row.total_steps, *name_collation_key(row.name)))


class LeaderboardService:
    """
    Leaderboard read path.

    Usage:
        service = LeaderboardService(AsyncSessionLocal, coordinator)
        rows = await service.fetch_leaderboard(limit=50)
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker],
        coordinator: Optional["SyncCoordinator"] = None,
        throttle_seconds: Optional[int] = None,
        stuck_timeout_seconds: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.coordinator = coordinator
        self.throttle = timedelta(
            seconds=throttle_seconds
            if throttle_seconds is not None
            else settings.refresh_steps_throttle_seconds
        )
        self.stuck_timeout = timedelta(
            seconds=stuck_timeout_seconds
            if stuck_timeout_seconds is not None
            else settings.stuck_refresh_timeout_seconds
        )

    async def fetch_leaderboard(
        self,
        limit: int = 100,
        now: Optional[datetime] = None
    ) -> list[LeaderboardRow]:
        """
        Ranked rows, best available data.

        Returns an empty list when no database is configured.
        """
        if self.session_factory is None:
            return []

        async with self.session_factory() as db:
            pairs = await ParticipantRepository(db).list_with_metrics()

        now = now or utcnow()
        rows = []
        stale_ids = []

        for participant, metrics in pairs:
            state = evaluate_sync_state(metrics, now, self.throttle, self.stuck_timeout)
            if state.should_queue:
                stale_ids.append(participant.id)

            rows.append(LeaderboardRow(
                participant_id=participant.id,
                name=participant.display_name,
                email=participant.email or "",
                photo=participant.profile_image_url,
                gender=participant.gender,
                total_steps=metrics.steps if metrics is not None and metrics.steps is not None else 0,
                last_synced_at=state.last_synced_at,
                is_refreshing=state.is_refreshing,
                sync_status=state.sync_status,
                token_expired=bool(metrics.token_expired) if metrics is not None else False,
            ))

        if stale_ids and self.coordinator is not None:
            logger.debug(f"Leaderboard found {len(stale_ids)} stale participants")
            self.coordinator.queue_participant_sync(stale_ids)

        return sort_rows(rows)[:max(limit, 0)]
