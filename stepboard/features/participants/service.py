"""
Participant sign-in handling.

Called after a successful Google sign-in: creates or updates the
participant and kicks off a step sync.

Sync policy:
- first time a refresh token is on file: sync now and wait
- refresh token already known: queue a background sync
- no refresh token: nothing to sync
"""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from stepboard.shared.clock import utcnow
from .models import Participant
from .repository import ParticipantRepository
from .schemas import OAuthAccount, OAuthProfile, SyncMode

if TYPE_CHECKING:
    from stepboard.features.sync import SyncCoordinator

logger = logging.getLogger(__name__)


class ParticipantService:
    """
    Participant lifecycle.

    Usage:
        service = ParticipantService(AsyncSessionLocal, coordinator)
        participant_id, mode = await service.upsert_from_sign_in(profile, account)
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker],
        coordinator: Optional["SyncCoordinator"] = None
    ):
        self.session_factory = session_factory
        self.coordinator = coordinator

    async def upsert_from_sign_in(
        self,
        profile: OAuthProfile,
        account: Optional[OAuthAccount] = None
    ) -> tuple[Optional[str], SyncMode]:
        """
        Create or update the participant for a signed-in user.

        Returns:
            (participant id, sync mode); (None, NONE) without a database
            or an email address
        """
        if self.session_factory is None or not profile.email:
            return None, SyncMode.NONE

        email = profile.email.lower()
        account = account or OAuthAccount()
        now = utcnow()

        async with self.session_factory() as db:
            repo = ParticipantRepository(db)
            existing = await repo.get_by_email(email)

            had_refresh_token = bool(existing and existing.google_refresh_token)
            refresh_token = account.refresh_token or (existing.google_refresh_token if existing else None)

            profile_values = dict(
                name=profile.name or (existing.name if existing else None) or email,
                email=email,
                profile_image_url=profile.image or (existing.profile_image_url if existing else None),
                user_id=profile.id or (existing.user_id if existing else None),
                updated_at=now,
            )
            if profile.gender is not None:
                profile_values["gender"] = profile.gender.value

            if refresh_token:
                profile_values.update(_merged_credentials(existing, account, refresh_token))

            if existing:
                await repo.update_fields({"id": existing.id}, **profile_values)
                participant_id = existing.id
            else:
                participant = await repo.create(created_at=now, **profile_values)
                participant_id = participant.id
                logger.info(f"Created participant {participant_id} for {email}")

            await db.commit()

        if not refresh_token or self.coordinator is None:
            return participant_id, SyncMode.NONE

        if not had_refresh_token:
            await self.coordinator.refresh_participants_by_ids([participant_id])
            return participant_id, SyncMode.IMMEDIATE

        self.coordinator.queue_participant_sync([participant_id])
        return participant_id, SyncMode.QUEUED


def _merged_credentials(
    existing: Optional[Participant],
    account: OAuthAccount,
    refresh_token: str
) -> dict:
    """New values win, existing ones fill the gaps."""
    if account.expires_at is not None:
        expiry = datetime.fromtimestamp(account.expires_at, tz=timezone.utc).replace(tzinfo=None)
    else:
        expiry = existing.google_token_expiry if existing else None

    return dict(
        google_access_token=account.access_token or (existing.google_access_token if existing else None),
        google_refresh_token=refresh_token,
        google_token_expiry=expiry,
        google_token_scope=account.scope or (existing.google_token_scope if existing else None),
        google_token_type=account.token_type or (existing.google_token_type if existing else None),
    )
