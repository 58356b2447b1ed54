"""
Google Fit error taxonomy.

Every failure raised by the OAuth helper and the Fit client is one of
these, so callers branch on the exception type:

    GoogleFitError
    ├── GoogleFitConfigError        client id/secret missing
    ├── GoogleFitAuthError          participant must sign in again
    │   ├── MissingRefreshTokenError
    │   └── TokenExpiredError
    ├── GoogleFitAPIError           non-2xx or malformed upstream reply
    │   ├── TokenRefreshError
    │   └── NoStepSourcesError
    └── GoogleFitNetworkError       transport failure, no reply at all
"""

from enum import Enum
from typing import Optional


class GoogleFitError(Exception):
    """Base Google Fit error."""
    pass


class GoogleFitConfigError(GoogleFitError):
    """Google OAuth client credentials are not configured."""
    pass


class GoogleFitAuthError(GoogleFitError):
    """Stored credentials can no longer be used."""
    pass


class MissingRefreshTokenError(GoogleFitAuthError):
    """Participant has no refresh token on file."""

    def __init__(self, message: str = "Missing Google refresh token; reconnect account."):
        super().__init__(message)


class TokenExpiredError(GoogleFitAuthError):
    """Refresh grant rejected, or access token refused by the API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GoogleFitAPIError(GoogleFitError):
    """Upstream API returned an error or unreadable data."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenRefreshError(GoogleFitAPIError):
    """Token endpoint failed for a reason other than revoked credentials."""
    pass


class NoStepSourcesError(GoogleFitAPIError):
    """No measured step data source is available for the participant."""

    def __init__(self, message: str = "No valid step sources found (excluding user_input)."):
        super().__init__(message)


class GoogleFitNetworkError(GoogleFitError):
    """Request never got an HTTP response."""
    pass


class SyncErrorKind(str, Enum):
    """Stored classification of a failed sync."""

    TOKEN_EXPIRED = "token_expired"
    UPSTREAM = "upstream"
    NETWORK = "network"
    UNKNOWN = "unknown"


def classify_sync_error(error: BaseException) -> SyncErrorKind:
    """Map an exception to the kind stored on the metrics record."""
    if isinstance(error, GoogleFitAuthError):
        return SyncErrorKind.TOKEN_EXPIRED
    if isinstance(error, GoogleFitNetworkError):
        return SyncErrorKind.NETWORK
    if isinstance(error, GoogleFitError):
        return SyncErrorKind.UPSTREAM
    return SyncErrorKind.UNKNOWN
