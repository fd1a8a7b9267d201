"""
QuizHub - Main Application
===========================

HTTP backend for the quiz-management product (users, quizzes, questions)
backed by MySQL.

Layers:
- Interfaces: FastAPI app, middleware, health endpoints
- Application: DTOs and repository interfaces
- Infrastructure: connection pool manager, ORM models, repositories
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from quizhub.config import settings
from quizhub.core import DatabaseUnavailableException
from quizhub.infrastructure.database import init_database, close_database, get_database
from quizhub.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    register_error_handlers,
)
from quizhub.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Create the connection pool manager
    3. Connect, start health checks, apply schema (reconnects in the
       background if MySQL is not reachable yet)

    SHUTDOWN:
    1. Stop health checks and pending reconnects
    2. Close the connection pool
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting QuizHub", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })
    app.state.settings = settings

    database = init_database(settings)
    if not await database.initialize():
        logger.warning("Database not available - running in degraded mode until reconnect succeeds")

    logger.info("QuizHub started")

    yield  # Application runs here

    logger.info("Shutting down QuizHub")
    await close_database()
    logger.info("QuizHub shutdown complete")


app = FastAPI(
    title="QuizHub API",
    description="Quiz management backend: users, quizzes and questions.",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)
# Outermost, so the correlation id is set before LoggingMiddleware runs
app.add_middleware(CorrelationIDMiddleware)
register_error_handlers(app)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service status",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "reconnect_attempts": 0
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports the pool manager's view of the database; the periodic health
    check job keeps it current.
    """
    try:
        database = get_database()
    except DatabaseUnavailableException:
        checks = {"database": "not_initialized", "reconnect_attempts": 0}
    else:
        checks = {
            "database": "connected" if database.is_connected else "disconnected",
            "reconnect_attempts": database.reconnect_attempts,
        }

    return {
        "status": "healthy" if checks["database"] == "connected" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "QuizHub",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "quizhub.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )


if __name__ == "__main__":
    run()
