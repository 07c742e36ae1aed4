"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from strike_coach.config import get_settings
from strike_coach.api import api_router
from strike_coach.api.sessions import get_registry
from strike_coach.engine.session_pipeline import SessionRegistry

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.app_name}")
    yield
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="""
    Strike Coach API

    Real-time martial-arts strike detection and scoring from pose landmarks
    produced by an external pose model (e.g. BlazePose in the browser).

    ## Key Features

    - **Strike Detection**: Jab, cross and roundhouse kick from landmark motion
    - **Scoring**: Speed / power / form weighted score per strike
    - **Technique Feedback**: Checklist comparison against reference techniques
    - **Stance Feedback**: Posture, stance width and guard cues per frame
    - **Session History**: Per-session and per-technique progress
    - **Client Strikes**: Strikes detected client-side share the same cooldown

    ## Session Flow

    `POST /sessions/start` → `POST /sessions/{id}/frames` (repeat) →
    `POST /sessions/{id}/end`

    At most one strike is counted per 500 ms cooldown window.
    """,
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check(registry: SessionRegistry = Depends(get_registry)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
        "live_sessions": len(registry)
    }

