"""
Approval gate: nothing generated reaches cadres until a human signs off.

  - Action plans are approved (DRAFT -> APPROVED) and then progressed through
    the status endpoint.
  - Party lines are published (is_active, published_at).
  - Speech points are approved (is_approved).

Re-approving something already approved is a no-op that returns the row
unchanged; approver and timestamp keep their first values.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.core.security import TenantContext
from app.models.models import ActionPlan, ActionPlanStatus, PartyLine, SpeechPoint
from app.services.transitions import ACTION_PLAN_TRANSITIONS, ensure_transition

logger = get_logger(__name__)


async def _get_owned(session: AsyncSession, ctx: TenantContext, model: type, row_id: str, label: str):
    row = await session.scalar(
        select(model).where(model.id == row_id, model.tenant_id == ctx.tenant_id)
    )
    if row is None:
        raise NotFoundError(label)
    return row


async def get_action_plan(session: AsyncSession, ctx: TenantContext, plan_id: str) -> ActionPlan:
    return await _get_owned(session, ctx, ActionPlan, plan_id, "Action plan")


async def get_party_line(session: AsyncSession, ctx: TenantContext, line_id: str) -> PartyLine:
    return await _get_owned(session, ctx, PartyLine, line_id, "Party line")


async def get_speech_point(session: AsyncSession, ctx: TenantContext, point_id: str) -> SpeechPoint:
    return await _get_owned(session, ctx, SpeechPoint, point_id, "Speech point")


# ── Action plans ────────────────────────────────────────────
async def approve_action_plan(
    session: AsyncSession, ctx: TenantContext, plan_id: str
) -> ActionPlan:
    plan = await get_action_plan(session, ctx, plan_id)
    if plan.status is ActionPlanStatus.APPROVED:
        return plan

    ensure_transition("Action plan", ACTION_PLAN_TRANSITIONS, plan.status, ActionPlanStatus.APPROVED)
    plan.status = ActionPlanStatus.APPROVED
    plan.approved_by = ctx.user_id
    plan.approved_at = datetime.now(UTC)
    await session.flush()
    logger.info("action_plan_approved", action_plan_id=plan.id, target_role=plan.target_role.value)
    return plan


async def change_action_plan_status(
    session: AsyncSession, ctx: TenantContext, plan_id: str, target: ActionPlanStatus
) -> ActionPlan:
    """Move an action plan along its lifecycle; approval still goes through approve_action_plan."""
    if target is ActionPlanStatus.APPROVED:
        return await approve_action_plan(session, ctx, plan_id)

    plan = await get_action_plan(session, ctx, plan_id)
    previous = plan.status
    ensure_transition("Action plan", ACTION_PLAN_TRANSITIONS, previous, target)
    plan.status = target
    await session.flush()
    logger.info(
        "action_plan_status_changed",
        action_plan_id=plan.id,
        previous=previous.value,
        status=target.value,
    )
    return plan


# ── Party lines ─────────────────────────────────────────────
async def publish_party_line(session: AsyncSession, ctx: TenantContext, line_id: str) -> PartyLine:
    line = await get_party_line(session, ctx, line_id)
    if line.is_active:
        return line

    line.is_active = True
    line.approved_by = ctx.user_id
    line.published_at = datetime.now(UTC)
    await session.flush()
    logger.info("party_line_published", party_line_id=line.id, level=line.level.value)
    return line


# ── Speech points ───────────────────────────────────────────
async def approve_speech_point(
    session: AsyncSession, ctx: TenantContext, point_id: str
) -> SpeechPoint:
    point = await get_speech_point(session, ctx, point_id)
    if point.is_approved:
        return point

    point.is_approved = True
    point.approved_by = ctx.user_id
    point.approved_at = datetime.now(UTC)
    await session.flush()
    logger.info("speech_point_approved", speech_point_id=point.id, point_type=point.point_type.value)
    return point
