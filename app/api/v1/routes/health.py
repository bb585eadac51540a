"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from app.api.v1.deps import AppSettings, DbSession
from app.core.logging import get_logger
from app.schemas.schemas import HealthResponse

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/healthz/", response_model=HealthResponse)
async def health_check(session: DbSession, settings: AppSettings) -> HealthResponse:
    database = "connected"
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("health_db_unreachable", error=str(e))
        database = "unreachable"
    return HealthResponse(
        status="healthy" if database == "connected" else "degraded",
        environment=settings.app_env,
        database=database,
    )
