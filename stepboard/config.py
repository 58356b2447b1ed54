"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, ConfigDict

# Challenge home timezone is IST (+05:30)
_IST = timezone(timedelta(hours=5, minutes=30))


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Database ===
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL (leaderboard is empty when unset)"
    )

    # === CORS ===
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === Google OAuth / Fit ===
    google_client_id: Optional[str] = Field(default=None)
    google_client_secret: Optional[str] = Field(default=None)
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for calls to Google APIs"
    )

    # === Challenge ===
    challenge_start: datetime = Field(
        default=datetime(2025, 10, 6, 0, 0, 0, tzinfo=_IST),
        description="First instant that counts towards the challenge"
    )
    challenge_end: datetime = Field(
        default=datetime(2025, 10, 30, 23, 59, 59, 999000, tzinfo=_IST),
        description="Last instant that counts towards the challenge"
    )
    challenge_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone used to label daily buckets"
    )

    # === Sync ===
    refresh_steps_throttle_seconds: int = Field(
        default=30 * 60,
        description="Minimum age of a sync before the leaderboard refreshes it"
    )
    stuck_refresh_timeout_seconds: int = Field(
        default=60,
        description="A refresh running longer than this is considered stuck"
    )
    daily_cache_ttl_seconds: int = Field(
        default=60 * 60,
        description="How long a cached daily breakdown stays fresh"
    )

    # === Cross-service integration ===
    cross_service_api_key: Optional[str] = Field(
        default=None,
        description="Shared API key for the sign-in hook"
    )

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: Optional[str]) -> Optional[str]:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v or None

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('challenge_start', 'challenge_end')
    @classmethod
    def assume_ist(cls, v: datetime) -> datetime:
        """Naive challenge instants are read as IST."""
        if v.tzinfo is None:
            return v.replace(tzinfo=_IST)
        return v

    @property
    def challenge_window_millis(self) -> tuple[int, int]:
        """Challenge window as (start, end) epoch milliseconds."""
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        millisecond = timedelta(milliseconds=1)
        return (
            (self.challenge_start - epoch) // millisecond,
            (self.challenge_end - epoch) // millisecond,
        )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
