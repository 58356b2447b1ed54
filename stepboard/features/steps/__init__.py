"""
Step storage module.

Usage:
    from stepboard.features.steps import StepsDataRepository, DailyStepsCache

Models:
- StepsData: synced metrics record per participant
- DailyStepsCacheEntry: cached daily breakdown
"""

from .models import StepsData, DailyStepsCacheEntry, MetricsStatus
from .repository import (
    StepsDataRepository,
    DailyStepsCacheRepository,
    serialize_daily_steps,
    deserialize_daily_steps,
)
from .cache import DailyStepsCache, should_fetch_fresh_data

__all__ = [
    # Models
    "StepsData",
    "DailyStepsCacheEntry",
    "MetricsStatus",
    # Repositories
    "StepsDataRepository",
    "DailyStepsCacheRepository",
    "serialize_daily_steps",
    "deserialize_daily_steps",
    # Cache
    "DailyStepsCache",
    "should_fetch_fresh_data",
]
