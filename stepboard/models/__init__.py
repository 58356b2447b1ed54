"""
Database Models

Feature models live in their feature packages (features/*/models.py)
and are imported lazily to avoid circular imports.
"""

from stepboard.models.base import Base


def load_all_models():
    """Import every feature model so it is registered on Base.metadata."""
    from stepboard.features.participants.models import Participant
    from stepboard.features.steps.models import StepsData, DailyStepsCacheEntry
    return Participant, StepsData, DailyStepsCacheEntry


__all__ = ["Base", "load_all_models"]
