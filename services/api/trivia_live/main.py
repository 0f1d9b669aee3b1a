"""
Trivia Live - FastAPI Backend

Main application entry point with REST API and Socket.IO.
"""
from contextlib import asynccontextmanager

import socketio
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .db.connection import close_db, init_db
from .errors import TriviaError
from .logging_config import setup_logging
from .routers import (
    answers_router,
    games_router,
    health_router,
    host_router,
    questions_router,
    rounds_router,
    teams_router,
)
from .socket_manager import configure_cors, sio

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    # Startup
    logger.info(
        "starting api",
        app=settings.app_name,
        version=__version__,
        storage=settings.storage_type,
        cors_origins=settings.cors_origins,
    )

    # Initialize database if using SQL storage
    if settings.storage_type == "sql":
        await init_db()

    # Configure Socket.IO CORS
    configure_cors(settings.cors_origins)

    yield

    # Shutdown
    logger.info("shutting down")
    if settings.storage_type == "sql":
        await close_db()
        logger.info("database connection closed")


# Create FastAPI app
app = FastAPI(
    title="Trivia Live API",
    description="Backend API for live multi-team trivia nights",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TriviaError)
async def trivia_error_handler(request: Request, exc: TriviaError) -> JSONResponse:
    """Render game errors as ``{"detail": {"code", "message"}}``."""
    if exc.status_code >= 500:
        logger.error(
            "request failed", code=exc.code, method=request.method, path=request.url.path, message=exc.message
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


# Include routers
app.include_router(health_router, prefix="/api")
app.include_router(games_router, prefix="/api")
app.include_router(rounds_router, prefix="/api")
app.include_router(questions_router, prefix="/api")
app.include_router(teams_router, prefix="/api")
app.include_router(answers_router, prefix="/api")
app.include_router(host_router, prefix="/api")


# Mount Socket.IO
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Trivia Live API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/health",
    }


# Create the combined ASGI app
def create_app() -> socketio.ASGIApp:
    """Create the combined FastAPI + Socket.IO ASGI app."""
    return socket_app


# For running with uvicorn directly
combined_app = create_app()
