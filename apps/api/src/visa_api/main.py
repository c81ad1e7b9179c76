"""
Visa API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections
- Error envelope handlers
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from visa_api import __version__
from visa_api.api import api_router
from visa_api.core import notifier
from visa_api.core.config import settings
from visa_api.core.database import async_session_maker, close_db, init_db
from visa_api.core.errors import register_exception_handlers
from visa_api.core.redis import close_redis, init_redis, ping_redis

logger = logging.getLogger("visa_api")


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Startup connects Redis and the database; shutdown waits for in-flight
    notifications before closing connections.
    """
    configure_logging()
    logger.info(f"Starting Visa API in {settings.python_env} mode...")

    try:
        await init_redis()
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        logger.info("Database connected")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        if settings.is_production:
            raise

    yield

    logger.info("Shutting down Visa API...")

    await notifier.drain()
    await close_redis()
    await close_db()
    logger.info("Cleanup complete")


app = FastAPI(
    title="Visa API",
    description="Visa application processing API",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Visa API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """Readiness check: the database must answer; Redis is reported."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.warning(f"Readiness database check failed: {e}")
        database = "unavailable"

    redis = "connected" if await ping_redis() else "unavailable"
    body = {
        "status": "ready" if database == "connected" else "not_ready",
        "database": database,
        "redis": redis,
    }
    return JSONResponse(status_code=200 if database == "connected" else 503, content=body)
