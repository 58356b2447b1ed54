"""
Participant schemas.

Pydantic models for the sign-in hook.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer-not-to-say"


class OAuthProfile(BaseModel):
    """User profile reported by the identity provider."""

    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    gender: Optional[Gender] = None


class OAuthAccount(BaseModel):
    """OAuth account data from the sign-in callback."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # Unix timestamp (seconds)
    scope: Optional[str] = None
    token_type: Optional[str] = None


class SignInRequest(BaseModel):
    user: OAuthProfile
    account: Optional[OAuthAccount] = None


class SyncMode(str, Enum):
    NONE = "none"
    IMMEDIATE = "immediate"
    QUEUED = "queued"


class SignInResponse(BaseModel):
    participant_id: Optional[str]
    sync: SyncMode

