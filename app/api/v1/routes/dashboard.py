"""Per-tenant pipeline dashboard."""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.deps import CurrentTenant, DbSession
from app.schemas.schemas import DashboardOut, Envelope
from app.services.dashboard_service import get_dashboard

router = APIRouter(prefix="/nb", tags=["dashboard"])


@router.get("/dashboard", response_model=Envelope[DashboardOut])
async def dashboard(session: DbSession, ctx: CurrentTenant) -> dict:
    return {"success": True, "data": await get_dashboard(session, ctx)}
