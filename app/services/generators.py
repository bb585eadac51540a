"""
Generators: fan a COMPLETED analysis out into role-, level- and
category-targeted artifacts.

Policy: append, never replace. Every call writes a complete new set stamped
with the next batch number for (analysis, artifact kind). The unique
constraints (analysis_id, role|level|point_type, batch_no) mean two
concurrent calls cannot both claim the same batch; the loser rolls back and
retries with a fresh number, up to `generation_max_retries` times.

Content is built deterministically from the stored analysis output, so
generation itself never calls a model and never partially fails.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import InvalidTransitionError, NotFoundError
from app.core.logging import get_logger
from app.core.security import TenantContext
from app.models.models import (
    ActionPlan,
    ActionPlanStatus,
    NewsAnalysis,
    OrgLevel,
    ParsedNews,
    PartyLine,
    Sentiment,
    SpeechPoint,
    SpeechPointType,
    SpeechPriority,
    Urgency,
)
from app.services.listing import Page, paginate
from app.services.transitions import ensure_generatable

logger = get_logger(__name__)

ORG_LEVELS: tuple[OrgLevel, ...] = (
    OrgLevel.CENTRAL_COMMITTEE,
    OrgLevel.CONSTITUENCY_HEAD,
    OrgLevel.SECTOR_OFFICER,
    OrgLevel.BOOTH_INCHARGE,
    OrgLevel.VOLUNTEER,
)

# ── Per-level guidance ──────────────────────────────────────
TARGET_AUDIENCE: dict[OrgLevel, list[str]] = {
    OrgLevel.CENTRAL_COMMITTEE: ["Senior Leaders", "State Presidents", "Policy Makers"],
    OrgLevel.CONSTITUENCY_HEAD: ["MLA/MP Candidates", "Constituency Leaders", "Core Committee"],
    OrgLevel.SECTOR_OFFICER: ["Zone Heads", "Mandal Presidents", "District Coordinators"],
    OrgLevel.BOOTH_INCHARGE: ["Booth Workers", "Polling Agents", "Local Leaders"],
    OrgLevel.VOLUNTEER: ["Ground Workers", "Voters", "Community Members"],
}

TONE_GUIDANCE: dict[OrgLevel, str] = {
    OrgLevel.CENTRAL_COMMITTEE: "Authoritative, strategic, policy-focused",
    OrgLevel.CONSTITUENCY_HEAD: "Leadership-oriented, motivational, locally relevant",
    OrgLevel.SECTOR_OFFICER: "Instructional, practical, action-oriented",
    OrgLevel.BOOTH_INCHARGE: "Clear, simple, task-focused",
    OrgLevel.VOLUNTEER: "Friendly, conversational, relatable",
}

# What each tier is actually able to do with a recommendation
ROLE_DUTIES: dict[OrgLevel, str] = {
    OrgLevel.CENTRAL_COMMITTEE: "Set the official position and brief spokespersons",
    OrgLevel.CONSTITUENCY_HEAD: "Adapt the position for the constituency and brief sector officers",
    OrgLevel.SECTOR_OFFICER: "Assign booth-level tasks and track completion",
    OrgLevel.BOOTH_INCHARGE: "Brief booth workers and report voter reactions",
    OrgLevel.VOLUNTEER: "Carry the message door to door and share approved content",
}

# How many recommendations each tier receives, top-down
ROLE_ITEM_LIMIT: dict[OrgLevel, int] = {
    OrgLevel.CENTRAL_COMMITTEE: 6,
    OrgLevel.CONSTITUENCY_HEAD: 5,
    OrgLevel.SECTOR_OFFICER: 4,
    OrgLevel.BOOTH_INCHARGE: 3,
    OrgLevel.VOLUNTEER: 2,
}

DELIVERY_GUIDANCE: dict[SpeechPointType, str] = {
    SpeechPointType.KEY_MESSAGE: "Deliver with confidence and clarity. Repeat key phrases for emphasis.",
    SpeechPointType.COUNTER_NARRATIVE: "Use facts firmly but avoid aggressive tone. Stay positive.",
    SpeechPointType.LOCAL_ISSUE: "Connect personally with audience. Use local examples and names.",
    SpeechPointType.SCHEME_HIGHLIGHT: "Be specific with numbers and benefits. Use success stories.",
    SpeechPointType.EMOTIONAL_APPEAL: "Speak from the heart. Pause for effect. Connect with shared values.",
    SpeechPointType.FACT_STAT: "State clearly and confidently. Cite sources when possible.",
}

BASE_DONTS = [
    "Do not speculate beyond the verified facts",
    "Do not make personal attacks on opponents",
    "Do not share unverified forwards or screenshots",
]

_HAS_FIGURE = re.compile(r"\d")


def _label(value: str) -> str:
    return value.replace("_", " ").title()


# ═══════════════════════════════════════════════════════════════
# Row builders (pure functions of the analysis)
# ═══════════════════════════════════════════════════════════════
def build_action_plans(analysis: NewsAnalysis, topic: str) -> list[dict[str, Any]]:
    recommendations = list(analysis.recommendations or [])
    rows = []
    for role in ORG_LEVELS:
        items = recommendations[: ROLE_ITEM_LIMIT[role]]
        rows.append(
            {
                "target_role": role,
                "title": f"{topic}: action plan for {_label(role.value)}",
                "description": f"{ROLE_DUTIES[role]}. {analysis.impact or ''}".strip(),
                "action_items": [{"task": item, "done": False} for item in items],
                "priority": analysis.urgency_level or Urgency.MEDIUM,
                "status": ActionPlanStatus.DRAFT,
                "estimated_impact": analysis.impact_score,
            }
        )
    return rows


def _what_not_to_say(sentiment: Sentiment | None) -> list[str]:
    donts = list(BASE_DONTS)
    if sentiment in (Sentiment.NEGATIVE, Sentiment.MIXED):
        donts.append("Do not deny the issue; acknowledge it and move to our response")
    if sentiment is Sentiment.POSITIVE:
        donts.append("Do not sound complacent or claim the result is already won")
    return donts


def build_party_lines(analysis: NewsAnalysis, topic: str) -> list[dict[str, Any]]:
    key_points = list(analysis.key_points or [])
    rows = []
    for rank, level in enumerate(ORG_LEVELS):
        rows.append(
            {
                "level": level,
                "topic": topic,
                "what_to_say": key_points,
                "what_not_to_say": _what_not_to_say(analysis.sentiment),
                # lower tiers get fewer, simpler lines
                "key_messages": key_points[: max(1, len(key_points) - rank)],
                "tone_guidance": TONE_GUIDANCE[level],
                "target_audience": TARGET_AUDIENCE[level],
                "priority": 5,
                "is_active": False,
            }
        )
    return rows


def applicable_point_types(analysis: NewsAnalysis) -> list[SpeechPointType]:
    """Categories that make sense for this analysis, in display order."""
    types = []
    for point_type in SpeechPointType:
        if point_type is SpeechPointType.COUNTER_NARRATIVE and analysis.sentiment not in (
            Sentiment.NEGATIVE,
            Sentiment.MIXED,
        ):
            continue
        if point_type is SpeechPointType.FACT_STAT and not any(
            _HAS_FIGURE.search(p) for p in analysis.key_points or []
        ):
            continue
        types.append(point_type)
    return types


def _speech_content(point_type: SpeechPointType, analysis: NewsAnalysis) -> str:
    key_points = list(analysis.key_points or [])
    recommendations = list(analysis.recommendations or [])
    if point_type is SpeechPointType.FACT_STAT:
        return "\n".join(p for p in key_points if _HAS_FIGURE.search(p))
    if point_type is SpeechPointType.COUNTER_NARRATIVE:
        return "\n".join(recommendations[:2])
    if point_type is SpeechPointType.KEY_MESSAGE:
        return key_points[0] if key_points else (analysis.summary or "")
    return analysis.summary or ""


def build_speech_points(analysis: NewsAnalysis, topic: str) -> list[dict[str, Any]]:
    return [
        {
            "point_type": point_type,
            "title": f"{_label(point_type.value)} - {topic}",
            "content": _speech_content(point_type, analysis),
            "delivery_guidance": DELIVERY_GUIDANCE[point_type],
            "priority": (
                SpeechPriority.MUST_MENTION
                if point_type is SpeechPointType.KEY_MESSAGE
                else SpeechPriority.RECOMMENDED
            ),
            "impact_score": analysis.impact_score,
            "is_approved": False,
        }
        for point_type in applicable_point_types(analysis)
    ]


# ═══════════════════════════════════════════════════════════════
# Persistence with batch claiming
# ═══════════════════════════════════════════════════════════════
async def _load_completed_analysis(
    session: AsyncSession, ctx: TenantContext, analysis_id: str
) -> tuple[NewsAnalysis, str]:
    analysis = await session.scalar(
        select(NewsAnalysis).where(
            NewsAnalysis.id == analysis_id, NewsAnalysis.tenant_id == ctx.tenant_id
        )
    )
    if analysis is None:
        raise NotFoundError("Analysis")
    ensure_generatable(analysis.status)
    parsed = await session.get(ParsedNews, analysis.parsed_news_id)
    topic = parsed.category.replace("_", " ").title() if parsed else "General"
    return analysis, topic


async def _generate(
    session: AsyncSession,
    ctx: TenantContext,
    analysis_id: str,
    model: type,
    builder: Callable[[NewsAnalysis, str], list[dict[str, Any]]],
    kind: str,
) -> list[Any]:
    settings = get_settings()
    attempts = max(1, settings.generation_max_retries)

    for attempt in range(1, attempts + 1):
        analysis, topic = await _load_completed_analysis(session, ctx, analysis_id)
        last_batch = await session.scalar(
            select(func.max(model.batch_no)).where(model.analysis_id == analysis.id)
        )
        batch_no = (last_batch or 0) + 1

        rows = [
            model(
                tenant_id=ctx.tenant_id,
                analysis_id=analysis.id,
                election_id=analysis.election_id,
                batch_no=batch_no,
                created_by=ctx.user_id,
                **fields,
            )
            for fields in builder(analysis, topic)
        ]
        session.add_all(rows)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            logger.warning(
                "generation_batch_conflict", kind=kind, analysis_id=analysis_id, attempt=attempt
            )
            continue

        logger.info(
            "artifacts_generated",
            kind=kind,
            analysis_id=analysis.id,
            batch_no=batch_no,
            count=len(rows),
        )
        return rows

    raise InvalidTransitionError(
        f"Could not claim a {kind} batch for analysis {analysis_id}; concurrent generation in progress"
    )


async def generate_action_plans(
    session: AsyncSession, ctx: TenantContext, analysis_id: str
) -> list[ActionPlan]:
    return await _generate(session, ctx, analysis_id, ActionPlan, build_action_plans, "action_plans")


async def generate_party_lines(
    session: AsyncSession, ctx: TenantContext, analysis_id: str
) -> list[PartyLine]:
    return await _generate(session, ctx, analysis_id, PartyLine, build_party_lines, "party_lines")


async def generate_speech_points(
    session: AsyncSession, ctx: TenantContext, analysis_id: str
) -> list[SpeechPoint]:
    return await _generate(session, ctx, analysis_id, SpeechPoint, build_speech_points, "speech_points")


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
async def list_action_plans(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    analysis_id: str | None = None,
    target_role: OrgLevel | None = None,
    priority: Urgency | None = None,
    status: ActionPlanStatus | None = None,
) -> Page:
    stmt = select(ActionPlan).where(ActionPlan.tenant_id == ctx.tenant_id)
    if analysis_id:
        stmt = stmt.where(ActionPlan.analysis_id == analysis_id)
    if target_role:
        stmt = stmt.where(ActionPlan.target_role == target_role)
    if priority:
        stmt = stmt.where(ActionPlan.priority == priority)
    if status:
        stmt = stmt.where(ActionPlan.status == status)
    stmt = stmt.order_by(ActionPlan.created_at.desc(), ActionPlan.batch_no.desc())
    return await paginate(session, stmt, page, limit)


async def list_party_lines(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    analysis_id: str | None = None,
    level: OrgLevel | None = None,
    is_active: bool | None = None,
) -> Page:
    stmt = select(PartyLine).where(PartyLine.tenant_id == ctx.tenant_id)
    if analysis_id:
        stmt = stmt.where(PartyLine.analysis_id == analysis_id)
    if level:
        stmt = stmt.where(PartyLine.level == level)
    if is_active is not None:
        stmt = stmt.where(PartyLine.is_active.is_(is_active))
    stmt = stmt.order_by(PartyLine.priority.desc(), PartyLine.created_at.desc())
    return await paginate(session, stmt, page, limit)


async def list_speech_points(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    analysis_id: str | None = None,
    point_type: SpeechPointType | None = None,
    priority: SpeechPriority | None = None,
    is_approved: bool | None = None,
) -> Page:
    stmt = select(SpeechPoint).where(SpeechPoint.tenant_id == ctx.tenant_id)
    if analysis_id:
        stmt = stmt.where(SpeechPoint.analysis_id == analysis_id)
    if point_type:
        stmt = stmt.where(SpeechPoint.point_type == point_type)
    if priority:
        stmt = stmt.where(SpeechPoint.priority == priority)
    if is_approved is not None:
        stmt = stmt.where(SpeechPoint.is_approved.is_(is_approved))
    stmt = stmt.order_by(SpeechPoint.impact_score.desc(), SpeechPoint.created_at.desc())
    return await paginate(session, stmt, page, limit)
