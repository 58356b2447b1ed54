"""
Step schemas.

Pydantic models for the participant daily-steps endpoint.
"""

from typing import Optional

from pydantic import BaseModel


class DailyStepsItem(BaseModel):
    date: str
    steps: int
    start_time_millis: int
    end_time_millis: int
    source: Optional[str] = None


class DailyStepsResponse(BaseModel):
    participant_id: str
    daily_steps: list[DailyStepsItem]
    from_cache: bool
    warning: Optional[str] = None
