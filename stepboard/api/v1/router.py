"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from stepboard.api.v1.routes import internal, leaderboard, participants, refresh

api_router = APIRouter()

api_router.include_router(leaderboard.router, tags=["Leaderboard"])
api_router.include_router(participants.router, tags=["Participants"])
api_router.include_router(refresh.router, tags=["Refresh"])
api_router.include_router(internal.router)
