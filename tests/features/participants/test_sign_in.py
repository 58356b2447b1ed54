"""
Tests for the sign-in upsert and the sync it triggers.
"""

from unittest.mock import MagicMock

import pytest

from stepboard.features.participants import (
    Gender,
    OAuthAccount,
    OAuthProfile,
    ParticipantRepository,
    ParticipantService,
    SyncMode,
)
from stepboard.features.steps import StepsDataRepository

pytestmark = pytest.mark.asyncio

EXPIRES_AT = 1761848999  # 2025-10-30 23:59:59 IST


async def load(session_factory, email):
    async with session_factory() as db:
        return await ParticipantRepository(db).get_by_email(email)


class TestUpsertFromSignIn:

    async def test_first_sign_in_syncs_immediately(self, session_factory, coordinator):
        service = ParticipantService(session_factory, coordinator)

        participant_id, mode = await service.upsert_from_sign_in(
            OAuthProfile(id="g-1", email="Asha@Example.com", name="Asha", gender=Gender.FEMALE),
            OAuthAccount(access_token="a", refresh_token="r", expires_at=EXPIRES_AT, scope="s"),
        )

        assert mode is SyncMode.IMMEDIATE
        participant = await load(session_factory, "asha@example.com")
        assert participant.id == participant_id
        assert participant.email == "asha@example.com"
        assert participant.gender == "female"
        assert participant.google_refresh_token == "r"

        async with session_factory() as db:
            metrics = await StepsDataRepository(db).get_by_participant_id(participant_id)
        assert metrics.steps == 8400

    async def test_known_refresh_token_queues_sync(self, session_factory, add_participant):
        existing = await add_participant(email="asha@example.com")
        coordinator = MagicMock()
        service = ParticipantService(session_factory, coordinator)

        participant_id, mode = await service.upsert_from_sign_in(
            OAuthProfile(email="asha@example.com", name="Asha K"),
            OAuthAccount(access_token="new-access"),
        )

        assert participant_id == existing.id
        assert mode is SyncMode.QUEUED
        coordinator.queue_participant_sync.assert_called_once_with([existing.id])
        coordinator.refresh_participants_by_ids.assert_not_called()

        participant = await load(session_factory, "asha@example.com")
        assert participant.name == "Asha K"
        assert participant.google_access_token == "new-access"
        assert participant.google_refresh_token == "refresh-1"

    async def test_no_refresh_token_no_sync(self, session_factory):
        coordinator = MagicMock()
        service = ParticipantService(session_factory, coordinator)

        participant_id, mode = await service.upsert_from_sign_in(
            OAuthProfile(email="new@example.com"),
        )

        assert participant_id is not None
        assert mode is SyncMode.NONE
        coordinator.queue_participant_sync.assert_not_called()

        participant = await load(session_factory, "new@example.com")
        assert participant.name == "new@example.com"
        assert participant.google_refresh_token is None

    async def test_missing_email_is_ignored(self, session_factory):
        service = ParticipantService(session_factory)

        assert await service.upsert_from_sign_in(OAuthProfile(name="Nobody")) == (None, SyncMode.NONE)

    async def test_no_database(self):
        service = ParticipantService(None)

        result = await service.upsert_from_sign_in(OAuthProfile(email="a@example.com"))

        assert result == (None, SyncMode.NONE)
