"""Storra rewards API entrypoint: ``uvicorn storra.main:app``."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from storra.config import get_settings
from storra.curriculum.router import router as lessons_router
from storra.database import close_db, init_db
from storra.health.router import router as health_router
from storra.leaderboard.router import router as leaderboard_router
from storra.middleware import setup_middleware
from storra.middleware.logging import setup_logging
from storra.quizzes.router import router as quizzes_router
from storra.redis_client import close_redis, init_redis
from storra.rewards.router import router as rewards_router

logger = structlog.get_logger()

API_ROUTERS = (rewards_router, quizzes_router, lessons_router, leaderboard_router)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)
    logger.info("storra_api_started", version=settings.app_version, environment=settings.environment)

    yield

    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Storra Rewards API",
        description="Daily rewards, spin wheel, achievements, quiz progress and leaderboard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    setup_middleware(app, settings)

    app.include_router(health_router, tags=["Health"])
    for router in API_ROUTERS:
        app.include_router(router)

    return app


app = create_app()
