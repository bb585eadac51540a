"""
Generator, approval and listing endpoints for the generated artifacts.

Action plans:  POST generate-action-plans/{id}, GET action-plans,
               PATCH action-plans/{id}/approve, PATCH action-plans/{id}/status
Party lines:   POST generate-party-lines/{id}, GET party-lines,
               PATCH party-lines/{id}/publish
Speech points: POST generate-speech-points/{id}, GET speech-points,
               PATCH speech-points/{id}/approve
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.api.v1.deps import (
    Approver,
    CurrentTenant,
    DbSession,
    Pagination,
    PipelineOperator,
    page_response,
)
from app.models.models import (
    ActionPlanStatus,
    OrgLevel,
    SpeechPointType,
    SpeechPriority,
    Urgency,
)
from app.schemas.schemas import (
    ActionPlanOut,
    ActionPlanStatusRequest,
    Envelope,
    PartyLineOut,
    SpeechPointOut,
)
from app.services import approvals, generators

router = APIRouter(prefix="/nb", tags=["artifacts"])

AnalysisFilter = Annotated[str | None, Query(alias="analysisId")]


# ── Action plans ────────────────────────────────────────────
@router.post(
    "/generate-action-plans/{analysis_id}",
    response_model=Envelope[list[ActionPlanOut]],
    status_code=status.HTTP_201_CREATED,
)
async def generate_action_plans(analysis_id: str, session: DbSession, ctx: PipelineOperator) -> dict:
    plans = await generators.generate_action_plans(session, ctx, analysis_id)
    return {"success": True, "data": plans}


@router.get("/action-plans", response_model=Envelope[list[ActionPlanOut]])
async def list_action_plans(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    analysis_id: AnalysisFilter = None,
    target_role: Annotated[OrgLevel | None, Query(alias="targetRole")] = None,
    priority: Urgency | None = None,
    status_filter: Annotated[ActionPlanStatus | None, Query(alias="status")] = None,
) -> dict:
    result = await generators.list_action_plans(
        session,
        ctx,
        page=paging.page,
        limit=paging.limit,
        analysis_id=analysis_id,
        target_role=target_role,
        priority=priority,
        status=status_filter,
    )
    return page_response(result)


@router.patch("/action-plans/{plan_id}/approve", response_model=Envelope[ActionPlanOut])
async def approve_action_plan(plan_id: str, session: DbSession, ctx: Approver) -> dict:
    plan = await approvals.approve_action_plan(session, ctx, plan_id)
    return {"success": True, "data": plan}


@router.patch("/action-plans/{plan_id}/status", response_model=Envelope[ActionPlanOut])
async def change_action_plan_status(
    plan_id: str, body: ActionPlanStatusRequest, session: DbSession, ctx: Approver
) -> dict:
    plan = await approvals.change_action_plan_status(session, ctx, plan_id, body.status)
    return {"success": True, "data": plan}


# ── Party lines ─────────────────────────────────────────────
@router.post(
    "/generate-party-lines/{analysis_id}",
    response_model=Envelope[list[PartyLineOut]],
    status_code=status.HTTP_201_CREATED,
)
async def generate_party_lines(analysis_id: str, session: DbSession, ctx: PipelineOperator) -> dict:
    lines = await generators.generate_party_lines(session, ctx, analysis_id)
    return {"success": True, "data": lines}


@router.get("/party-lines", response_model=Envelope[list[PartyLineOut]])
async def list_party_lines(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    analysis_id: AnalysisFilter = None,
    level: OrgLevel | None = None,
    is_active: Annotated[bool | None, Query(alias="isActive")] = None,
) -> dict:
    result = await generators.list_party_lines(
        session,
        ctx,
        page=paging.page,
        limit=paging.limit,
        analysis_id=analysis_id,
        level=level,
        is_active=is_active,
    )
    return page_response(result)


@router.patch("/party-lines/{line_id}/publish", response_model=Envelope[PartyLineOut])
async def publish_party_line(line_id: str, session: DbSession, ctx: Approver) -> dict:
    line = await approvals.publish_party_line(session, ctx, line_id)
    return {"success": True, "data": line}


# ── Speech points ───────────────────────────────────────────
@router.post(
    "/generate-speech-points/{analysis_id}",
    response_model=Envelope[list[SpeechPointOut]],
    status_code=status.HTTP_201_CREATED,
)
async def generate_speech_points(analysis_id: str, session: DbSession, ctx: PipelineOperator) -> dict:
    points = await generators.generate_speech_points(session, ctx, analysis_id)
    return {"success": True, "data": points}


@router.get("/speech-points", response_model=Envelope[list[SpeechPointOut]])
async def list_speech_points(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    analysis_id: AnalysisFilter = None,
    point_type: Annotated[SpeechPointType | None, Query(alias="pointType")] = None,
    priority: SpeechPriority | None = None,
    is_approved: Annotated[bool | None, Query(alias="isApproved")] = None,
) -> dict:
    result = await generators.list_speech_points(
        session,
        ctx,
        page=paging.page,
        limit=paging.limit,
        analysis_id=analysis_id,
        point_type=point_type,
        priority=priority,
        is_approved=is_approved,
    )
    return page_response(result)


@router.patch("/speech-points/{point_id}/approve", response_model=Envelope[SpeechPointOut])
async def approve_speech_point(point_id: str, session: DbSession, ctx: Approver) -> dict:
    point = await approvals.approve_speech_point(session, ctx, point_id)
    return {"success": True, "data": point}
