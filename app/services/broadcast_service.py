"""Broadcast dispatcher: published party line -> broadcast record -> send."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationFailedError
from app.core.logging import get_logger
from app.core.security import TenantContext
from app.models.models import (
    Broadcast,
    BroadcastChannel,
    BroadcastPriority,
    BroadcastStatus,
    OrgLevel,
    PartyLine,
)
from app.services.listing import Page, paginate
from app.services.notification_service import NotificationService
from app.services.transitions import BROADCAST_TRANSITIONS, ensure_transition

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


async def create_broadcast(
    session: AsyncSession,
    ctx: TenantContext,
    party_line_id: str,
    *,
    channel: BroadcastChannel | None = None,
    target_level: OrgLevel | None = None,
    message: str | None = None,
    target_areas: list[str] | None = None,
    scheduled_at: datetime | None = None,
    priority: BroadcastPriority | None = None,
) -> Broadcast:
    line = await session.scalar(
        select(PartyLine).where(
            PartyLine.id == party_line_id, PartyLine.tenant_id == ctx.tenant_id
        )
    )
    if line is None:
        raise NotFoundError("Party line")
    if not line.is_active:
        raise ValidationFailedError("Party line must be published before broadcasting")

    status = BroadcastStatus.PENDING
    if scheduled_at is not None:
        scheduled_at = _as_utc(scheduled_at)
        if scheduled_at > datetime.now(UTC):
            status = BroadcastStatus.SCHEDULED

    broadcast = Broadcast(
        tenant_id=ctx.tenant_id,
        party_line_id=line.id,
        channel=channel or BroadcastChannel.APP,
        target_level=target_level or line.level,
        target_areas=list(target_areas or []),
        message=message or "\n\n".join(line.key_messages or []),
        priority=priority or BroadcastPriority.NORMAL,
        status=status,
        scheduled_at=scheduled_at,
        created_by=ctx.user_id,
    )
    session.add(broadcast)
    await session.flush()
    logger.info(
        "broadcast_created",
        broadcast_id=broadcast.id,
        party_line_id=line.id,
        channel=broadcast.channel.value,
        status=status.value,
    )
    return broadcast


async def send_broadcast(
    session: AsyncSession, ctx: TenantContext, broadcast_id: str, notifier: NotificationService
) -> Broadcast:
    """Deliver and mark SENT. A gateway failure propagates and the row stays unsent."""
    broadcast = await session.scalar(
        select(Broadcast).where(
            Broadcast.id == broadcast_id, Broadcast.tenant_id == ctx.tenant_id
        )
    )
    if broadcast is None:
        raise NotFoundError("Broadcast")
    ensure_transition("Broadcast", BROADCAST_TRANSITIONS, broadcast.status, BroadcastStatus.SENT)

    await notifier.deliver(broadcast)

    broadcast.status = BroadcastStatus.SENT
    broadcast.sent_at = datetime.now(UTC)
    broadcast.sent_by = ctx.user_id
    await session.flush()
    logger.info("broadcast_sent", broadcast_id=broadcast.id, channel=broadcast.channel.value)
    return broadcast


async def list_broadcasts(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    status: BroadcastStatus | None = None,
    channel: BroadcastChannel | None = None,
    target_level: OrgLevel | None = None,
) -> Page:
    stmt = select(Broadcast).where(Broadcast.tenant_id == ctx.tenant_id)
    if status:
        stmt = stmt.where(Broadcast.status == status)
    if channel:
        stmt = stmt.where(Broadcast.channel == channel)
    if target_level:
        stmt = stmt.where(Broadcast.target_level == target_level)
    stmt = stmt.order_by(Broadcast.created_at.desc())
    return await paginate(session, stmt, page, limit)
