"""
Shared FastAPI dependencies.

Services and the session factory live on app.state (set by create_app),
so tests can build an app around their own database and Google stubs.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stepboard.config import settings
from stepboard.features.leaderboard import LeaderboardService
from stepboard.features.participants import ParticipantService
from stepboard.features.sync import SyncCoordinator


def get_session_factory(request: Request) -> Optional[async_sessionmaker]:
    return request.app.state.session_factory


async def get_async_db(
    session_factory: Optional[async_sessionmaker] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session (503 if unconfigured)."""
    if session_factory is None:
        raise HTTPException(status_code=503, detail="Database not configured")

    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_sync_coordinator(request: Request) -> SyncCoordinator:
    return request.app.state.sync_coordinator


def get_leaderboard_service(
    session_factory: Optional[async_sessionmaker] = Depends(get_session_factory),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
) -> LeaderboardService:
    return LeaderboardService(session_factory, coordinator)


def get_participant_service(
    session_factory: Optional[async_sessionmaker] = Depends(get_session_factory),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
) -> ParticipantService:
    return ParticipantService(session_factory, coordinator)


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """Verify cross-service API key."""
    if not settings.cross_service_api_key:
        raise HTTPException(status_code=503, detail="Internal API not configured")
    if x_api_key != settings.cross_service_api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return x_api_key
