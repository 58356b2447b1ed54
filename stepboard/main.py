"""
Stepboard API

FastAPI application serving the step challenge leaderboard.
"""

from contextlib import asynccontextmanager
import logging
import sys
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import async_sessionmaker

from stepboard import __version__
from stepboard.config import settings
from stepboard.db import session as db_session
from stepboard.api.v1.router import api_router
from stepboard.features.google_fit import GoogleFitClient, GoogleOAuth
from stepboard.features.sync import SyncCoordinator


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting Stepboard API...")
    session_factory = app.state.session_factory
    if session_factory is not None:
        await db_session.init_db(session_factory.kw["bind"])
        logger.info("Database initialized")
    else:
        logger.warning("DATABASE_URL not set; leaderboard will be empty")

    if not settings.google_client_id or not settings.google_client_secret:
        logger.warning("Google OAuth client not configured; token refresh will fail")

    yield

    # Shutdown
    await app.state.sync_coordinator.shutdown()
    logger.info("Background syncs stopped")
    if session_factory is not None:
        await db_session.dispose_db(session_factory.kw["bind"])
    logger.info("Shutting down...")


# === App Creation ===
def create_app(
    session_factory: Optional[async_sessionmaker] = None,
    google_transport: Optional[httpx.AsyncBaseTransport] = None,
    use_configured_database: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        session_factory: Database to use instead of DATABASE_URL
        google_transport: httpx transport for Google calls (tests)
        use_configured_database: False runs without any database
    """
    if session_factory is None and use_configured_database:
        session_factory = db_session.get_session_factory()

    app = FastAPI(
        title="Stepboard API",
        description="Step challenge leaderboard backed by Google Fit",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.session_factory = session_factory
    app.state.sync_coordinator = SyncCoordinator(
        session_factory,
        oauth=GoogleOAuth(transport=google_transport),
        fit_client=GoogleFitClient(transport=google_transport),
    )

    # === Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Routes ===
    app.include_router(api_router, prefix="/api/v1")

    # === Health Check ===
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "database": app.state.session_factory is not None,
            "background_syncs": app.state.sync_coordinator.background_task_count,
        }

    return app


app = create_app()
