"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from community.config import get_settings
from community.database import close_db, init_db
from community.health.router import router as health_router
from community.middleware import setup_middleware
from community.questions.router import router as questions_router
from community.redis_client import close_redis, init_redis
from community.social.notification_router import router as notification_router
from community.users.router import router as users_router
from community.votes.router import router as votes_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)
    logger.info("community_api_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Community Hub API",
        description="Questions, answers, votes and notifications for the farmer community",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(questions_router)
    app.include_router(votes_router)
    app.include_router(notification_router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("community.main:app", host=settings.host, port=settings.port, log_config=None)
