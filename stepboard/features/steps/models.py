"""
Step storage models.

Models:
- StepsData: latest synced metrics, one row per participant
- DailyStepsCacheEntry: TTL'd per-day breakdown for the detail view
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, JSON, Text

from stepboard.models.base import Base
from stepboard.shared.clock import utcnow


class MetricsStatus(str, Enum):
    READY = "ready"
    REFRESHING = "refreshing"
    ERROR = "error"


class StepsData(Base):
    """
    Synced step metrics for one participant.

    Written only by the sync coordinator and the daily-steps route.
    updated_at has no column default: a row created by a refresh claim
    must not look recently synced.
    """

    __tablename__ = "steps_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(
        String(36),
        ForeignKey("participants.id"),
        unique=True,
        nullable=False,
        index=True
    )

    # Challenge totals
    steps = Column(Integer, nullable=True)
    daily_steps = Column(JSON, nullable=True)  # list of DailySteps dicts
    daily_steps_updated_at = Column(DateTime, nullable=True)

    # Sync state
    status = Column(String(20), nullable=False, default=MetricsStatus.READY.value)
    error_message = Column(Text, nullable=True)
    error_kind = Column(String(20), nullable=True)  # SyncErrorKind
    token_expired = Column(Boolean, nullable=False, default=False)
    last_synced_at = Column(DateTime, nullable=True)
    refresh_started_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<StepsData participant={self.participant_id} steps={self.steps} {self.status}>"


class DailyStepsCacheEntry(Base):
    """
    Last-known daily breakdown for a participant.

    Staleness is independent from StepsData: see DailyStepsCache.
    """

    __tablename__ = "daily_steps_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(
        String(36),
        ForeignKey("participants.id"),
        unique=True,
        nullable=False,
        index=True
    )

    daily_steps = Column(JSON, nullable=False, default=list)
    last_fetched_at = Column(DateTime, nullable=True)
    last_successful_fetch_at = Column(DateTime, nullable=True)
    error_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<DailyStepsCacheEntry participant={self.participant_id} errors={self.error_count}>"
