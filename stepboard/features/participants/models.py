"""
Participant model.

A participant is created on first Google sign-in and carries the OAuth
credentials used for background step syncs.
"""

from sqlalchemy import Column, String, DateTime, Text
import uuid

from stepboard.models.base import Base
from stepboard.shared.clock import utcnow
from stepboard.features.google_fit.oauth import TokenSet


class Participant(Base):
    """
    Challenge participant.

    Google tokens should be encrypted in production.
    """

    __tablename__ = "participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=True)  # OAuth subject

    # Profile
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    profile_image_url = Column(Text, nullable=True)
    gender = Column(String(20), nullable=True)  # male | female | other | prefer-not-to-say

    # Google OAuth credentials
    google_access_token = Column(Text, nullable=True)
    google_refresh_token = Column(Text, nullable=True)
    google_token_expiry = Column(DateTime, nullable=True)
    google_token_scope = Column(Text, nullable=True)
    google_token_type = Column(String(50), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.google_refresh_token)

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Participant"

    def token_set(self) -> TokenSet:
        """Stored Google credentials as a TokenSet."""
        return TokenSet(
            access_token=self.google_access_token,
            refresh_token=self.google_refresh_token,
            expiry=self.google_token_expiry,
            scope=self.google_token_scope,
            token_type=self.google_token_type,
        )

    def __repr__(self):
        return f"<Participant {self.id} ({self.email})>"
