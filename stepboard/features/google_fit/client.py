"""
Google Fit API client.

Fetches day-bucketed step totals for the challenge window.

Data policy:
- Manually entered steps ("user_input" streams) never count
- If Google's merged "estimated_steps" stream exists it is the single
  source of truth, otherwise all measured step streams are aggregated
- Days with zero steps are absence of data, not a measured zero
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

import httpx

from stepboard.config import settings
from .errors import (
    GoogleFitAPIError,
    GoogleFitNetworkError,
    NoStepSourcesError,
    TokenExpiredError,
)

logger = logging.getLogger(__name__)

DAY_IN_MILLIS = 24 * 60 * 60 * 1000

STEP_COUNT_DELTA = "com.google.step_count.delta"
ESTIMATED_STEPS = "estimated_steps"
USER_INPUT = "user_input"


# =============================================================================
# Data
# =============================================================================

@dataclass
class StepBucket:
    start_time_millis: int
    end_time_millis: int
    steps: int
    origin_data_source_id: Optional[str] = None


@dataclass
class DailySteps:
    """One challenge day as stored in the metrics record and cache."""

    date: str  # YYYY-MM-DD in the challenge timezone
    steps: int
    start_time_millis: int
    end_time_millis: int
    source: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DailySteps":
        return cls(
            date=data["date"],
            steps=int(data["steps"]),
            start_time_millis=int(data["start_time_millis"]),
            end_time_millis=int(data["end_time_millis"]),
            source=data.get("source"),
        )


@dataclass
class StepSummary:
    total_steps: int
    daily_steps: list[DailySteps] = field(default_factory=list)


# =============================================================================
# Google Fit Client
# =============================================================================

class GoogleFitClient:
    """
    Async client for the Google Fit REST API.

    Usage:
        client = GoogleFitClient()
        summary = await client.fetch_challenge_step_summary(access_token)
        summary.total_steps, summary.daily_steps
    """

    API_URL = "https://www.googleapis.com/fitness/v1/users/me"
    AGGREGATE_URL = f"{API_URL}/dataset:aggregate"
    DATA_SOURCES_URL = f"{API_URL}/dataSources"

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        window_millis: Optional[tuple[int, int]] = None,
        timezone_name: Optional[str] = None,
    ):
        self._transport = transport
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.window_millis = window_millis or settings.challenge_window_millis
        self.timezone = ZoneInfo(timezone_name or settings.challenge_timezone)

    # -------------------------------------------------------------------------
    # API Calls
    # -------------------------------------------------------------------------

    async def _api_request(
        self,
        method: str,
        url: str,
        access_token: str,
        json: Optional[dict] = None
    ) -> dict:
        """
        Make an authenticated API request.

        Raises:
            TokenExpiredError: If Google refuses the access token
            GoogleFitAPIError: If API returns error or non-JSON
            GoogleFitNetworkError: If no response was received
        """
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=json
                )
        except httpx.TransportError as e:
            raise GoogleFitNetworkError(f"Google Fit unreachable: {e}") from e

        if response.status_code == 401:
            raise TokenExpiredError(
                f"Google Fit rejected access token: {response.text}",
                response.status_code,
                response.text,
            )
        elif not response.is_success:
            raise GoogleFitAPIError(
                f"Google Fit API error: {response.status_code} {response.text}",
                response.status_code,
                response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GoogleFitAPIError(
                f"Google Fit returned invalid JSON: {response.text[:200]}",
                response.status_code,
                response.text,
            ) from e

        if not isinstance(data, dict):
            raise GoogleFitAPIError("Google Fit returned unexpected payload", response.status_code)
        return data

    async def list_data_sources(self, access_token: str) -> list[dict]:
        """Get every data source visible to the access token."""
        data = await self._api_request("GET", self.DATA_SOURCES_URL, access_token)
        sources = data.get("dataSource")
        return sources if isinstance(sources, list) else []

    async def resolve_aggregate_sources(self, access_token: str) -> list[dict]:
        """
        Build the aggregateBy list for step queries.

        Raises:
            NoStepSourcesError: If no measured step stream exists
        """
        stream_ids = select_step_sources(await self.list_data_sources(access_token))
        return [{"dataSourceId": stream_id} for stream_id in stream_ids]

    async def fetch_step_buckets(
        self,
        access_token: str,
        bucket_duration_millis: int = DAY_IN_MILLIS
    ) -> list[StepBucket]:
        """Get step buckets covering the challenge window."""
        start, end = self.window_millis
        payload = {
            "aggregateBy": await self.resolve_aggregate_sources(access_token),
            "bucketByTime": {"durationMillis": bucket_duration_millis},
            "startTimeMillis": start,
            "endTimeMillis": end,
        }

        data = await self._api_request("POST", self.AGGREGATE_URL, access_token, json=payload)
        raw_buckets = data.get("bucket")
        if not isinstance(raw_buckets, list):
            return []

        buckets = [parse_bucket(raw) for raw in raw_buckets]
        return [bucket for bucket in buckets if bucket is not None]

    async def fetch_challenge_step_summary(self, access_token: str) -> StepSummary:
        """Get total and per-day steps for the challenge window."""
        buckets = await self.fetch_step_buckets(access_token, DAY_IN_MILLIS)
        summary = summarize_buckets(buckets, self.timezone)
        logger.debug(
            f"Fetched {len(summary.daily_steps)} step days "
            f"({summary.total_steps} steps) from {len(buckets)} buckets"
        )
        return summary

    async def fetch_daily_steps(self, access_token: str) -> list[DailySteps]:
        return (await self.fetch_challenge_step_summary(access_token)).daily_steps

    async def fetch_total_steps(self, access_token: str) -> int:
        return (await self.fetch_challenge_step_summary(access_token)).total_steps


# =============================================================================
# Helper Functions
# =============================================================================

def select_step_sources(data_sources: list[dict]) -> list[str]:
    """
    Pick the step streams to aggregate.

    Returns:
        [estimated_steps stream] if present, else every measured
        step_count.delta stream

    Raises:
        NoStepSourcesError: If nothing eligible is left
    """
    stream_ids = []
    for source in data_sources:
        stream_id = source.get("dataStreamId") if isinstance(source, dict) else None
        if not isinstance(stream_id, str):
            continue
        if STEP_COUNT_DELTA in stream_id and USER_INPUT not in stream_id:
            stream_ids.append(stream_id)

    if not stream_ids:
        raise NoStepSourcesError()

    for stream_id in stream_ids:
        if ESTIMATED_STEPS in stream_id:
            return [stream_id]

    return stream_ids


def parse_bucket(raw_bucket: Any) -> Optional[StepBucket]:
    """
    Fold one aggregate bucket into a step count.

    Returns None if the bucket has no usable time range.
    """
    if not isinstance(raw_bucket, dict):
        return None

    start = _parse_millis(raw_bucket.get("startTimeMillis"))
    end = _parse_millis(raw_bucket.get("endTimeMillis"))
    if start is None or end is None:
        return None

    steps = 0
    origin = None

    for dataset in raw_bucket.get("dataset") or []:
        if not isinstance(dataset, dict):
            continue
        for point in dataset.get("point") or []:
            if not isinstance(point, dict):
                continue

            origin_id = (
                point.get("originDataSourceId")
                or point.get("dataSourceId")
                or point.get("dataOrigin")
            )
            if isinstance(origin_id, str) and USER_INPUT in origin_id:
                continue

            value = _point_value(point)
            if value > 0 and origin is None and isinstance(origin_id, str):
                origin = origin_id
            steps += value

    return StepBucket(
        start_time_millis=start,
        end_time_millis=end,
        steps=steps,
        origin_data_source_id=origin,
    )


def summarize_buckets(buckets: list[StepBucket], tz: ZoneInfo) -> StepSummary:
    """Drop empty days and total the rest."""
    daily_steps = [
        DailySteps(
            date=format_local_date(bucket.start_time_millis, tz),
            steps=bucket.steps,
            start_time_millis=bucket.start_time_millis,
            end_time_millis=bucket.end_time_millis,
            source=bucket.origin_data_source_id,
        )
        for bucket in buckets
        if bucket.steps > 0
    ]
    return StepSummary(
        total_steps=sum(day.steps for day in daily_steps),
        daily_steps=daily_steps,
    )


def format_local_date(millis: int, tz: ZoneInfo) -> str:
    """Epoch millis to YYYY-MM-DD in tz."""
    return datetime.fromtimestamp(millis / 1000, tz=tz).strftime("%Y-%m-%d")


def _parse_millis(value: Any) -> Optional[int]:
    # Google sends int64 fields as JSON strings
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _point_value(point: dict) -> int:
    values = point.get("value")
    if not isinstance(values, list) or not values or not isinstance(values[0], dict):
        return 0

    value = values[0]
    int_val = value.get("intVal")
    if isinstance(int_val, (int, float)) and not isinstance(int_val, bool):
        return int(int_val)

    fp_val = value.get("fpVal")
    if isinstance(fp_val, (int, float)) and not isinstance(fp_val, bool) and math.isfinite(fp_val):
        # round half up
        return math.floor(fp_val + 0.5)

    return 0
