"""API routes."""

from fastapi import APIRouter

from strike_coach.api import sessions, techniques

api_router = APIRouter()

api_router.include_router(sessions.router, prefix="/sessions", tags=["Sessions"])
api_router.include_router(techniques.router, prefix="/techniques", tags=["Techniques"])
