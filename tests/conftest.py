"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from stepboard.db.session import init_db
from stepboard.features.google_fit import GoogleFitClient, GoogleOAuth
from stepboard.features.participants import Participant
from stepboard.features.sync import SyncCoordinator
from stepboard.shared.clock import utcnow


# 2025-10-06 00:00 IST and 2025-10-07 00:00 IST
DAY_1_MILLIS = 1759689000000
DAY_2_MILLIS = 1759775400000
DAY_MILLIS = 86400000

TOKEN_URL = "https://oauth2.googleapis.com/token"
DATA_SOURCES_URL = "https://www.googleapis.com/fitness/v1/users/me/dataSources"
AGGREGATE_URL = "https://www.googleapis.com/fitness/v1/users/me/dataset:aggregate"

ESTIMATED_STREAM = "derived:com.google.step_count.delta:com.google.android.gms:estimated_steps"
PHONE_STREAM = "derived:com.google.step_count.delta:com.google.android.gms:merge_step_deltas"
MANUAL_STREAM = "raw:com.google.step_count.delta:com.google.android.apps.fitness:user_input"


def make_bucket(start_millis: int, *step_values: int, origin: str = PHONE_STREAM) -> dict:
    """Aggregate bucket with one point per value."""
    return {
        "startTimeMillis": str(start_millis),
        "endTimeMillis": str(start_millis + DAY_MILLIS),
        "dataset": [{
            "point": [
                {"value": [{"intVal": value}], "originDataSourceId": origin}
                for value in step_values
            ]
        }],
    }


class FakeGoogle:
    """
    Stand-in for Google's token and Fit endpoints.

    Serves canned replies through httpx.MockTransport and records every
    request. Setting `gate` makes aggregate calls wait until it is set.
    """

    def __init__(self):
        # (status, JSON body or text)
        self.token_reply = (200, {"access_token": "fresh-access", "expires_in": 3599, "token_type": "Bearer"})
        self.data_sources = [{"dataStreamId": ESTIMATED_STREAM}, {"dataStreamId": MANUAL_STREAM}]
        self.buckets = [make_bucket(DAY_1_MILLIS, 3000, 1200), make_bucket(DAY_2_MILLIS, 4200)]
        self.aggregate_status = 200
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.requests: list[httpx.Request] = []

    def calls(self, url: str) -> list[httpx.Request]:
        return [request for request in self.requests if str(request.url) == url]

    def aggregate_bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.calls(AGGREGATE_URL)]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with

        url = str(request.url)
        if url == TOKEN_URL:
            status, body = self.token_reply
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)
        if url == DATA_SOURCES_URL:
            return httpx.Response(200, json={"dataSource": self.data_sources})
        if url == AGGREGATE_URL:
            if self.gate is not None:
                await self.gate.wait()
            if self.aggregate_status != 200:
                return httpx.Response(self.aggregate_status, text="backend error")
            return httpx.Response(200, json={"bucket": self.buckets})
        return httpx.Response(404, text=f"unexpected url {url}")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def oauth(google: FakeGoogle) -> GoogleOAuth:
    return GoogleOAuth(client_id="client-id", client_secret="client-secret", transport=google.transport)


@pytest.fixture
def fit_client(google: FakeGoogle) -> GoogleFitClient:
    return GoogleFitClient(transport=google.transport)


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite file database with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'stepboard.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def coordinator(session_factory, oauth, fit_client) -> AsyncGenerator[SyncCoordinator, None]:
    coordinator = SyncCoordinator(session_factory, oauth=oauth, fit_client=fit_client)
    yield coordinator
    await coordinator.shutdown()


@pytest.fixture
def add_participant(session_factory):
    """Insert a participant; valid (non-expiring) credentials by default."""

    async def _add(
        email: str = "asha@example.com",
        name: Optional[str] = "Asha",
        refresh_token: Optional[str] = "refresh-1",
        access_token: Optional[str] = "access-1",
        expiry: Optional[datetime] = None,
        gender: Optional[str] = None,
    ) -> Participant:
        async with session_factory() as db:
            participant = Participant(
                email=email,
                name=name,
                gender=gender,
                google_refresh_token=refresh_token,
                google_access_token=access_token,
                google_token_expiry=expiry or utcnow() + timedelta(hours=1),
            )
            db.add(participant)
            await db.commit()
            return participant

    return _add
