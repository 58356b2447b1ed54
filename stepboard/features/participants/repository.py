"""
Participant repository.

Data access layer for participants and their Google credentials.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stepboard.shared.repository import BaseRepository
from stepboard.features.google_fit import TokenSet
from stepboard.features.steps.models import StepsData
from .models import Participant


class ParticipantRepository(BaseRepository[Participant]):
    """Repository for participants."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Participant)

    async def get_by_email(self, email: str) -> Participant | None:
        return await self.get_by(email=email.lower())

    async def list_with_metrics(self) -> list[tuple[Participant, Optional[StepsData]]]:
        """
        Every participant joined with its metrics record.

        Participants without a record come back with None.
        """
        result = await self.db.execute(
            select(Participant, StepsData)
            .outerjoin(StepsData, StepsData.participant_id == Participant.id)
        )
        return [(participant, metrics) for participant, metrics in result.all()]

    async def update_credentials(
        self,
        participant_id: str,
        tokens: TokenSet,
        now: datetime
    ) -> None:
        """Write a refreshed credential set back onto the participant."""
        await self.update_fields(
            {"id": participant_id},
            google_access_token=tokens.access_token,
            google_refresh_token=tokens.refresh_token,
            google_token_expiry=tokens.expiry,
            google_token_scope=tokens.scope,
            google_token_type=tokens.token_type,
            updated_at=now,
        )
