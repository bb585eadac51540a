"""
Broadcast and campaign speech endpoints.

GET  /api/v1/nb/broadcasts                 - list broadcasts
POST /api/v1/nb/broadcasts                 - create from a published party line
POST /api/v1/nb/broadcasts/{id}/send       - deliver and mark SENT
GET  /api/v1/nb/campaign-speeches          - list campaign speeches
POST /api/v1/nb/campaign-speeches          - schedule an approved speech point
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.api.v1.deps import (
    Approver,
    Broadcaster,
    CurrentTenant,
    DbSession,
    Notifier,
    Pagination,
    PipelineOperator,
    page_response,
)
from app.models.models import BroadcastChannel, BroadcastStatus, OrgLevel, SpeechType
from app.schemas.schemas import (
    BroadcastCreate,
    BroadcastOut,
    CampaignSpeechCreate,
    CampaignSpeechOut,
    Envelope,
)
from app.services import broadcast_service, campaign_service

router = APIRouter(prefix="/nb", tags=["broadcasts"])


@router.get("/broadcasts", response_model=Envelope[list[BroadcastOut]])
async def list_broadcasts(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    status_filter: Annotated[BroadcastStatus | None, Query(alias="status")] = None,
    channel: BroadcastChannel | None = None,
    target_level: Annotated[OrgLevel | None, Query(alias="targetLevel")] = None,
) -> dict:
    result = await broadcast_service.list_broadcasts(
        session,
        ctx,
        page=paging.page,
        limit=paging.limit,
        status=status_filter,
        channel=channel,
        target_level=target_level,
    )
    return page_response(result)


@router.post(
    "/broadcasts", response_model=Envelope[BroadcastOut], status_code=status.HTTP_201_CREATED
)
async def create_broadcast(body: BroadcastCreate, session: DbSession, ctx: Broadcaster) -> dict:
    broadcast = await broadcast_service.create_broadcast(
        session,
        ctx,
        body.party_line_id,
        channel=body.channel,
        target_level=body.target_level,
        message=body.message,
        target_areas=body.target_areas,
        scheduled_at=body.scheduled_at,
        priority=body.priority,
    )
    return {"success": True, "data": broadcast}


@router.post("/broadcasts/{broadcast_id}/send", response_model=Envelope[BroadcastOut])
async def send_broadcast(
    broadcast_id: str, session: DbSession, ctx: Approver, notifier: Notifier
) -> dict:
    broadcast = await broadcast_service.send_broadcast(session, ctx, broadcast_id, notifier)
    return {"success": True, "data": broadcast}


@router.get("/campaign-speeches", response_model=Envelope[list[CampaignSpeechOut]])
async def list_campaign_speeches(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    speech_type: Annotated[SpeechType | None, Query(alias="speechType")] = None,
) -> dict:
    result = await campaign_service.list_campaign_speeches(
        session,
        ctx,
        page=paging.page,
        limit=paging.limit,
        status=status_filter,
        speech_type=speech_type,
    )
    return page_response(result)


@router.post(
    "/campaign-speeches",
    response_model=Envelope[CampaignSpeechOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_campaign_speech(
    body: CampaignSpeechCreate, session: DbSession, ctx: PipelineOperator
) -> dict:
    speech = await campaign_service.create_campaign_speech(
        session,
        ctx,
        body.speech_point_id,
        election_id=body.election_id,
        speech_type=body.speech_type,
        venue=body.venue,
        scheduled_at=body.scheduled_at,
        target_audience=body.target_audience,
        estimated_audience_size=body.estimated_audience_size,
        notes=body.notes,
    )
    return {"success": True, "data": speech}
