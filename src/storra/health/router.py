"""Liveness, readiness and version probes (no auth)."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storra.config import get_settings
from storra.database import get_session
from storra.redis_client import redis_status

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Database must answer; Redis is reported but optional."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        database = f"error: {exc}"

    redis = await redis_status()
    ready = database == "ok" and redis in ("ok", "not configured")
    return {
        "status": "ready" if ready else "degraded",
        "checks": {"database": database, "redis": redis},
    }


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "service": "storra-rewards",
        "version": settings.app_version,
        "environment": settings.environment,
    }
