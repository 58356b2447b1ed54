"""
Step sync orchestration.

Refreshes participants' step totals from Google Fit.

Sync Flow (per batch):
1. Drop ids that already have a sync in flight
2. Mark every found participant's metrics record "refreshing"
3. Refresh all participants concurrently; one failure never cancels
   the others
4. Per participant: token check/refresh -> step summary -> store result
   (or store the classified error)

No database session is held open while Google is being called.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from stepboard.shared.clock import utcnow
from stepboard.features.google_fit import (
    EnsuredToken,
    GoogleFitClient,
    GoogleOAuth,
    MissingRefreshTokenError,
    SyncErrorKind,
    TokenSet,
    classify_sync_error,
)
from stepboard.features.participants.repository import ParticipantRepository
from stepboard.features.steps.repository import StepsDataRepository
from .pending import PendingSyncSet

logger = logging.getLogger(__name__)


@dataclass
class FailedParticipant:
    participant_id: str
    name: str
    error: str
    error_kind: str


@dataclass
class RefreshStats:
    """Outcome of one refresh batch."""

    total_attempted: int = 0
    tokens_refreshed: int = 0
    successful_syncs: int = 0
    failed_syncs: int = 0
    failed_participants: list[FailedParticipant] = field(default_factory=list)
    skipped_in_flight: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class _ParticipantSnapshot:
    participant_id: str
    name: str
    tokens: TokenSet


@dataclass
class _SyncOutcome:
    participant_id: str
    name: str
    success: bool
    token_refreshed: bool = False
    error: Optional[str] = None
    error_kind: Optional[SyncErrorKind] = None


class SyncCoordinator:
    """
    Batch and background step sync.

    One instance per process; it owns the in-flight set, so every caller
    that may trigger a sync must share it.

    Usage:
        coordinator = SyncCoordinator(AsyncSessionLocal)
        stats = await coordinator.refresh_participants_by_ids(ids)
        task = coordinator.queue_participant_sync(ids)  # returns immediately
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker],
        oauth: Optional[GoogleOAuth] = None,
        fit_client: Optional[GoogleFitClient] = None,
        pending: Optional[PendingSyncSet] = None,
    ):
        self.session_factory = session_factory
        self.oauth = oauth or GoogleOAuth()
        self.fit_client = fit_client or GoogleFitClient()
        self.pending = pending or PendingSyncSet()
        # Keep strong references to background tasks to prevent GC
        self._tasks: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.session_factory is not None

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def refresh_participants_by_ids(self, ids: Iterable[str]) -> RefreshStats:
        """
        Refresh participants and wait for the result.

        Ids with a sync already in flight are skipped silently.
        """
        if not self.enabled:
            return RefreshStats()

        participant_ids = _unique(ids)
        if not participant_ids:
            return RefreshStats()

        with self.pending.reserve(participant_ids) as claimed:
            stats = await self._refresh(claimed) if claimed else RefreshStats()

        stats.skipped_in_flight = len(participant_ids) - len(claimed)
        return stats

    def queue_participant_sync(self, ids: Iterable[str]) -> Optional[asyncio.Task]:
        """
        Schedule a refresh without waiting for it.

        Must be called from a running event loop. Failures are logged,
        never raised to the caller.

        Returns:
            The background task, or None if nothing needed scheduling
        """
        if not self.enabled:
            return None

        claimed = self.pending.claim(_unique(ids))
        if not claimed:
            return None

        try:
            task = asyncio.create_task(self._run_queued(claimed))
        except RuntimeError:
            self.pending.release(claimed)
            raise

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Queued background sync for {len(claimed)} participants")
        return task

    async def wait_idle(self) -> None:
        """Wait until every background sync has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background syncs (application shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def background_task_count(self) -> int:
        return len(self._tasks)

    async def _run_queued(self, ids: list[str]) -> Optional[RefreshStats]:
        try:
            stats = await self._refresh(ids)
            logger.info(
                f"Background sync finished: {stats.successful_syncs} ok, "
                f"{stats.failed_syncs} failed"
            )
            return stats
        except Exception as e:
            logger.error(f"Failed to refresh participants: {e}", exc_info=True)
            return None
        finally:
            self.pending.release(ids)

    # =========================================================================
    # Batch
    # =========================================================================

    async def _refresh(self, ids: list[str]) -> RefreshStats:
        snapshots = await self._claim_metrics(ids)

        missing = len(ids) - len(snapshots)
        if missing:
            logger.warning(f"Skipping {missing} unknown participant ids")

        results = await asyncio.gather(
            *(self._refresh_participant(snapshot) for snapshot in snapshots),
            return_exceptions=True,
        )

        stats = RefreshStats(total_attempted=len(snapshots))
        for snapshot, result in zip(snapshots, results):
            if isinstance(result, BaseException):
                # storing the failure itself failed
                logger.error(
                    f"Unhandled sync failure for participant {snapshot.participant_id}: {result}"
                )
                result = _SyncOutcome(
                    participant_id=snapshot.participant_id,
                    name=snapshot.name,
                    success=False,
                    error=str(result) or type(result).__name__,
                    error_kind=classify_sync_error(result),
                )

            if result.token_refreshed:
                stats.tokens_refreshed += 1
            if result.success:
                stats.successful_syncs += 1
            else:
                stats.failed_syncs += 1
                stats.failed_participants.append(FailedParticipant(
                    participant_id=result.participant_id,
                    name=result.name,
                    error=result.error or "",
                    error_kind=(result.error_kind or SyncErrorKind.UNKNOWN).value,
                ))

        return stats

    async def _claim_metrics(self, ids: list[str]) -> list[_ParticipantSnapshot]:
        """Load participants and mark their metrics refreshing."""
        async with self.session_factory() as db:
            participants = await ParticipantRepository(db).get_many_by_ids(ids)
            steps_repo = StepsDataRepository(db)

            now = utcnow()
            for participant in participants:
                await steps_repo.mark_refreshing(participant.id, now)
            await db.commit()

            return [
                _ParticipantSnapshot(
                    participant_id=participant.id,
                    name=participant.display_name,
                    tokens=participant.token_set(),
                )
                for participant in participants
            ]

    # =========================================================================
    # Single Participant
    # =========================================================================

    async def _refresh_participant(self, snapshot: _ParticipantSnapshot) -> _SyncOutcome:
        participant_id = snapshot.participant_id

        if not snapshot.tokens.refresh_token:
            error = MissingRefreshTokenError()
            await self._store_failure(participant_id, error, None)
            return self._failure(snapshot, error, token_refreshed=False)

        ensured: Optional[EnsuredToken] = None
        try:
            ensured = await self.oauth.ensure_access_token(snapshot.tokens)
            summary = await self.fit_client.fetch_challenge_step_summary(ensured.access_token)
        except Exception as e:
            logger.error(f"Failed to refresh participant {participant_id}: {e}")
            await self._store_failure(participant_id, e, ensured)
            return self._failure(snapshot, e, token_refreshed=bool(ensured and ensured.refreshed))

        async with self.session_factory() as db:
            now = utcnow()
            await StepsDataRepository(db).record_success(participant_id, summary, now)
            if ensured.refreshed:
                await ParticipantRepository(db).update_credentials(
                    participant_id, ensured.updated_tokens, now
                )
            await db.commit()

        logger.debug(f"Synced participant {participant_id}: {summary.total_steps} steps")
        return _SyncOutcome(
            participant_id=participant_id,
            name=snapshot.name,
            success=True,
            token_refreshed=ensured.refreshed,
        )

    async def _store_failure(
        self,
        participant_id: str,
        error: Exception,
        ensured: Optional[EnsuredToken]
    ) -> None:
        async with self.session_factory() as db:
            now = utcnow()
            await StepsDataRepository(db).record_error(
                participant_id,
                _error_message(error),
                classify_sync_error(error),
                now,
            )
            # keep a token we already paid for
            if ensured is not None and ensured.refreshed:
                await ParticipantRepository(db).update_credentials(
                    participant_id, ensured.updated_tokens, now
                )
            await db.commit()

    @staticmethod
    def _failure(
        snapshot: _ParticipantSnapshot,
        error: Exception,
        token_refreshed: bool
    ) -> _SyncOutcome:
        return _SyncOutcome(
            participant_id=snapshot.participant_id,
            name=snapshot.name,
            success=False,
            token_refreshed=token_refreshed,
            error=_error_message(error),
            error_kind=classify_sync_error(error),
        )


def _error_message(error: BaseException) -> str:
    return str(error) or "Unknown error during Google Fit sync."


def _unique(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(str(participant_id) for participant_id in ids))
