"""
Dashboard aggregator.

Every number is a COUNT over the live tables at request time; nothing here is
cached, so the figures always match what the list endpoints return.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import TenantContext
from app.models.models import (
    ActionPlan,
    ActionPlanStatus,
    AnalysisStatus,
    Broadcast,
    BroadcastStatus,
    CampaignSpeech,
    NewsAnalysis,
    ParsedNews,
    PartyLine,
    SpeechPoint,
)


async def _count(session: AsyncSession, model: type, tenant_id: str, *criteria) -> int:
    stmt = select(func.count()).select_from(model).where(model.tenant_id == tenant_id, *criteria)
    return (await session.scalar(stmt)) or 0


async def _recent(session: AsyncSession, model: type, tenant_id: str, limit: int) -> list[Any]:
    rows = await session.scalars(
        select(model)
        .where(model.tenant_id == tenant_id)
        .order_by(model.created_at.desc())
        .limit(limit)
    )
    return list(rows)


async def get_dashboard(session: AsyncSession, ctx: TenantContext) -> dict[str, Any]:
    tenant = ctx.tenant_id
    recent_limit = get_settings().dashboard_recent_limit

    stats = {
        "parsed_news": {"total": await _count(session, ParsedNews, tenant)},
        "analyses": {
            "total": await _count(session, NewsAnalysis, tenant),
            "pending": await _count(
                session, NewsAnalysis, tenant, NewsAnalysis.status == AnalysisStatus.PENDING
            ),
            "completed": await _count(
                session, NewsAnalysis, tenant, NewsAnalysis.status == AnalysisStatus.COMPLETED
            ),
            "failed": await _count(
                session, NewsAnalysis, tenant, NewsAnalysis.status == AnalysisStatus.FAILED
            ),
        },
        "action_plans": {
            "total": await _count(session, ActionPlan, tenant),
            "approved": await _count(
                session, ActionPlan, tenant, ActionPlan.status == ActionPlanStatus.APPROVED
            ),
        },
        "party_lines": {
            "total": await _count(session, PartyLine, tenant),
            "active": await _count(session, PartyLine, tenant, PartyLine.is_active.is_(True)),
        },
        "speech_points": {
            "total": await _count(session, SpeechPoint, tenant),
            "approved": await _count(
                session, SpeechPoint, tenant, SpeechPoint.is_approved.is_(True)
            ),
        },
        "campaign_speeches": {"total": await _count(session, CampaignSpeech, tenant)},
        "broadcasts": {
            "total": await _count(session, Broadcast, tenant),
            "sent": await _count(
                session, Broadcast, tenant, Broadcast.status == BroadcastStatus.SENT
            ),
        },
    }

    return {
        "stats": stats,
        "recent_parsed_news": await _recent(session, ParsedNews, tenant, recent_limit),
        "recent_analyses": await _recent(session, NewsAnalysis, tenant, recent_limit),
        "recent_action_plans": await _recent(session, ActionPlan, tenant, recent_limit),
    }
