"""Campaign speeches built on approved speech points."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationFailedError
from app.core.logging import get_logger
from app.core.security import TenantContext
from app.models.models import CampaignSpeech, SpeechType
from app.services.approvals import get_speech_point
from app.services.listing import Page, paginate

logger = get_logger(__name__)


async def create_campaign_speech(
    session: AsyncSession,
    ctx: TenantContext,
    speech_point_id: str,
    *,
    election_id: str | None = None,
    speech_type: SpeechType | None = None,
    venue: str = "",
    scheduled_at: datetime | None = None,
    target_audience: list[str] | None = None,
    estimated_audience_size: int = 0,
    notes: str | None = None,
) -> CampaignSpeech:
    point = await get_speech_point(session, ctx, speech_point_id)
    if not point.is_approved:
        raise ValidationFailedError("Speech point must be approved before use in a campaign")

    speech = CampaignSpeech(
        tenant_id=ctx.tenant_id,
        speech_point_id=point.id,
        election_id=election_id or point.election_id,
        speech_type=speech_type or SpeechType.RALLY,
        venue=venue,
        scheduled_at=scheduled_at,
        target_audience=list(target_audience or []),
        estimated_audience_size=estimated_audience_size,
        notes=notes,
        created_by=ctx.user_id,
    )
    session.add(speech)
    point.used_in_campaigns = (point.used_in_campaigns or 0) + 1
    await session.flush()
    logger.info(
        "campaign_speech_created",
        campaign_speech_id=speech.id,
        speech_point_id=point.id,
        used_in_campaigns=point.used_in_campaigns,
    )
    return speech


async def list_campaign_speeches(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    status: str | None = None,
    speech_type: SpeechType | None = None,
) -> Page:
    stmt = select(CampaignSpeech).where(CampaignSpeech.tenant_id == ctx.tenant_id)
    if status:
        stmt = stmt.where(CampaignSpeech.status == status)
    if speech_type:
        stmt = stmt.where(CampaignSpeech.speech_type == speech_type)
    stmt = stmt.order_by(CampaignSpeech.scheduled_at.desc(), CampaignSpeech.created_at.desc())
    return await paginate(session, stmt, page, limit)
