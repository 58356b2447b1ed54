"""
Google Fit integration module.

Usage:
    from stepboard.features.google_fit import GoogleOAuth, GoogleFitClient

Components:
- GoogleOAuth: access token validity check and refresh
- GoogleFitClient: step data sources and daily aggregation
"""

from .errors import (
    GoogleFitError,
    GoogleFitConfigError,
    GoogleFitAuthError,
    MissingRefreshTokenError,
    TokenExpiredError,
    GoogleFitAPIError,
    TokenRefreshError,
    NoStepSourcesError,
    GoogleFitNetworkError,
    SyncErrorKind,
    classify_sync_error,
)
from .oauth import (
    GoogleOAuth,
    TokenSet,
    EnsuredToken,
    TOKEN_EXPIRY_MARGIN,
)
from .client import (
    GoogleFitClient,
    DailySteps,
    StepBucket,
    StepSummary,
    DAY_IN_MILLIS,
    select_step_sources,
    parse_bucket,
    summarize_buckets,
    format_local_date,
)

__all__ = [
    # Errors
    "GoogleFitError",
    "GoogleFitConfigError",
    "GoogleFitAuthError",
    "MissingRefreshTokenError",
    "TokenExpiredError",
    "GoogleFitAPIError",
    "TokenRefreshError",
    "NoStepSourcesError",
    "GoogleFitNetworkError",
    "SyncErrorKind",
    "classify_sync_error",
    # OAuth
    "GoogleOAuth",
    "TokenSet",
    "EnsuredToken",
    "TOKEN_EXPIRY_MARGIN",
    # Client
    "GoogleFitClient",
    "DailySteps",
    "StepBucket",
    "StepSummary",
    "DAY_IN_MILLIS",
    "select_step_sources",
    "parse_bucket",
    "summarize_buckets",
    "format_local_date",
]
