"""
Participant management module.

Usage:
    from stepboard.features.participants import Participant, ParticipantService

Models:
- Participant: challenge participant with Google credentials
"""

from .models import Participant
from .schemas import (
    Gender,
    OAuthProfile,
    OAuthAccount,
    SignInRequest,
    SignInResponse,
    SyncMode,
)
from .repository import ParticipantRepository
from .service import ParticipantService

__all__ = [
    # Models
    "Participant",
    # Schemas
    "Gender",
    "OAuthProfile",
    "OAuthAccount",
    "SignInRequest",
    "SignInResponse",
    "SyncMode",
    # Repositories
    "ParticipantRepository",
    # Services
    "ParticipantService",
]
