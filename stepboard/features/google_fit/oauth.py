"""
Google OAuth token handling.

Handles:
- Access token validity check (60 s safety margin)
- Token refresh via the refresh_token grant

Google does not rotate refresh tokens on refresh, so the stored refresh
token is always carried over.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

import httpx

from stepboard.config import settings
from stepboard.shared.clock import to_naive_utc, utcnow
from .errors import (
    GoogleFitConfigError,
    GoogleFitNetworkError,
    MissingRefreshTokenError,
    TokenExpiredError,
    TokenRefreshError,
)

logger = logging.getLogger(__name__)

# Access tokens expiring within this margin are refreshed up front
TOKEN_EXPIRY_MARGIN = timedelta(seconds=60)

# OAuth error codes meaning the grant itself is dead
_REVOKED_GRANT_ERRORS = {"invalid_grant", "invalid_token", "unauthorized_client"}


@dataclass(frozen=True)
class TokenSet:
    """Google credential set as stored on a participant."""

    refresh_token: Optional[str]
    access_token: Optional[str] = None
    expiry: Optional[datetime] = None  # naive UTC
    scope: Optional[str] = None
    token_type: Optional[str] = None

    def is_access_token_valid(self, now: Optional[datetime] = None) -> bool:
        """True if the access token can be used for at least another minute."""
        if not self.access_token or not self.expiry:
            return False
        now = now or utcnow()
        return to_naive_utc(self.expiry) - now > TOKEN_EXPIRY_MARGIN


@dataclass(frozen=True)
class EnsuredToken:
    access_token: str
    refreshed: bool
    updated_tokens: TokenSet


class GoogleOAuth:
    """
    Google OAuth token handler.

    Usage:
        oauth = GoogleOAuth()
        ensured = await oauth.ensure_access_token(participant.token_set())
        if ensured.refreshed:
            ...persist ensured.updated_tokens
    """

    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.client_id = client_id or settings.google_client_id
        self.client_secret = client_secret or settings.google_client_secret
        self._transport = transport
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds

    async def refresh_token(self, refresh_token: str) -> dict:
        """
        Exchange a refresh token for a new access token.

        Returns:
            {
                "access_token": "...",
                "expires_in": 3599,
                "token_type": "Bearer",   # optional
                "scope": "..."            # optional
            }

        Raises:
            GoogleFitConfigError: Client id/secret not configured
            TokenExpiredError: Grant revoked or rejected
            TokenRefreshError: Any other non-2xx reply
            GoogleFitNetworkError: No reply
        """
        if not self.client_id or not self.client_secret:
            raise GoogleFitConfigError("Google OAuth client is not configured")

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    self.TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    }
                )
        except httpx.TransportError as e:
            raise GoogleFitNetworkError(f"Google token endpoint unreachable: {e}") from e

        if not response.is_success:
            message = f"Failed to refresh Google token: {response.status_code} {response.text}"
            logger.error(message)
            if _is_revoked_grant(response):
                raise TokenExpiredError(message, response.status_code, response.text)
            raise TokenRefreshError(message, response.status_code, response.text)

        try:
            payload = response.json()
            payload["expires_in"] = int(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise TokenRefreshError(
                f"Malformed token response: {response.text}",
                response.status_code,
                response.text,
            ) from e

        if not payload.get("access_token"):
            raise TokenRefreshError(
                f"Token response without access_token: {response.text}",
                response.status_code,
                response.text,
            )

        return payload

    async def ensure_access_token(
        self,
        tokens: TokenSet,
        now: Optional[datetime] = None
    ) -> EnsuredToken:
        """
        Return a usable access token, refreshing it if needed.

        No network call happens when the stored token is still valid or
        when there is no refresh token at all.
        """
        if not tokens.refresh_token:
            raise MissingRefreshTokenError()

        now = now or utcnow()
        if tokens.is_access_token_valid(now):
            return EnsuredToken(
                access_token=tokens.access_token,
                refreshed=False,
                updated_tokens=tokens,
            )

        payload = await self.refresh_token(tokens.refresh_token)

        updated = replace(
            tokens,
            access_token=payload["access_token"],
            expiry=now + timedelta(seconds=payload["expires_in"]),
            scope=payload.get("scope") or tokens.scope,
            token_type=payload.get("token_type") or tokens.token_type,
        )
        logger.debug("Google access token refreshed, expires at %s", updated.expiry)

        return EnsuredToken(
            access_token=updated.access_token,
            refreshed=True,
            updated_tokens=updated,
        )


def _is_revoked_grant(response: httpx.Response) -> bool:
    if response.status_code == 401:
        return True
    if response.status_code != 400:
        return False
    try:
        error = response.json().get("error")
    except (ValueError, AttributeError):
        return False
    return error in _REVOKED_GRANT_ERRORS

