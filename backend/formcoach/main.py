"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formcoach import __version__
from formcoach.api import api_router
from formcoach.config import get_settings
from formcoach.sessions import SessionRegistry

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
    app.state.sessions = SessionRegistry()
    yield
    app.state.sessions.clear()
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="""
    Exercise Form Feedback API

    Scores a live stream of body-pose observations against per-exercise
    form rules and produces an end-of-session feedback summary.

    ## Session Flow

    1. `POST /sessions` with an exercise to start analyzing
    2. `POST /sessions/{id}/frames` for every detector frame (at most one
       frame per second is scored; the rest are dropped)
    3. `POST /sessions/{id}/stop` to freeze the tally
    4. `GET /sessions/{id}/summary` for the feedback text

    Undetected frames (missing or low-confidence joints) are reported
    but never counted in the statistics.
    """,
    version=__version__,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "health": "/health"
    }
