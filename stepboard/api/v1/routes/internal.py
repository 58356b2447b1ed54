"""
Internal API routes for cross-service communication.

Protected by X-API-Key header (shared secret with the sign-in frontend).
"""

import logging

from fastapi import APIRouter, Depends

from stepboard.api.dependencies import get_participant_service, verify_api_key
from stepboard.features.participants import (
    ParticipantService,
    SignInRequest,
    SignInResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.post(
    "/participants/sign-in",
    response_model=SignInResponse,
    dependencies=[Depends(verify_api_key)],
)
async def participant_signed_in(
    request: SignInRequest,
    service: ParticipantService = Depends(get_participant_service),
):
    """
    Hook: user signed in with Google.

    Creates or updates the participant and triggers a step sync.
    """
    participant_id, sync_mode = await service.upsert_from_sign_in(request.user, request.account)

    logger.info(
        "Sign-in hook: email=%s, participant_id=%s, sync=%s",
        request.user.email, participant_id, sync_mode.value,
    )

    return SignInResponse(participant_id=participant_id, sync=sync_mode)
