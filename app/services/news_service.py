"""
Parse and analysis stages of the news-to-action pipeline.

Both stages follow the same shape:
  1. validate the precondition and record the in-flight status
  2. commit, so other operators see the row while the model is running
  3. call the model
  4. record COMPLETED, or record FAILED, commit, and re-raise

Nothing here retries; a failed stage is re-triggered by the operator.
"""

from __future__ import annotations

from datetime import UTC, datetime

from langchain_core.language_models.chat_models import BaseChatModel
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.agents.nodes.analyzer import analyze_news
from app.agents.nodes.parser import parse_news
from app.agents.state import ParsedContent, RawNews
from app.core.errors import InvalidTransitionError, NotFoundError, UpstreamAIError
from app.core.logging import get_logger
from app.core.security import TenantContext
from app.models.models import (
    AnalysisStatus,
    GeographicLevel,
    NewsAnalysis,
    NewsItem,
    ParsedNews,
    ParseStatus,
    Sentiment,
    Urgency,
)
from app.services.context_service import build_local_context
from app.services.listing import Page, paginate
from app.services.transitions import (
    ANALYSIS_TRANSITIONS,
    PARSE_TRANSITIONS,
    ensure_analyzable,
    ensure_transition,
)

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════
# Parse stage
# ═══════════════════════════════════════════════════════════════
async def _get_visible_news(session: AsyncSession, ctx: TenantContext, news_id: str) -> NewsItem:
    news = await session.scalar(
        select(NewsItem).where(
            NewsItem.id == news_id,
            or_(NewsItem.tenant_id == ctx.tenant_id, NewsItem.tenant_id.is_(None)),
        )
    )
    if news is None:
        raise NotFoundError("News")
    return news


def _raw_news(news: NewsItem) -> RawNews:
    return {
        "title": news.title,
        "content": news.content or news.summary or "",
        "category": news.category or "GENERAL",
        "source": news.source or "unknown",
        "geographic_level": news.geographic_level or "STATE",
    }


def _apply_parsed(row: ParsedNews, parsed: ParsedContent) -> None:
    row.title = parsed["title"]
    row.summary = parsed["summary"]
    row.category = parsed["category"]
    row.sentiment = Sentiment(parsed["sentiment"])
    row.relevance_score = parsed["relevance_score"]
    row.impact_score = parsed["impact_score"]
    row.urgency_level = Urgency(parsed["urgency_level"])
    row.geographic_relevance = GeographicLevel(parsed["geographic_relevance"])
    row.keywords = parsed["keywords"]


async def parse_news_item(
    session: AsyncSession, ctx: TenantContext, news_id: str, llm: BaseChatModel
) -> tuple[ParsedNews, bool]:
    """
    Parse one raw news item for the tenant.

    Returns (row, created). A COMPLETED row is returned untouched; a PENDING
    or FAILED row is parsed again in place, so a news item never maps to more
    than one ParsedNews per tenant.
    """
    news = await _get_visible_news(session, ctx, news_id)

    row = await session.scalar(
        select(ParsedNews).where(
            ParsedNews.tenant_id == ctx.tenant_id, ParsedNews.source_news_id == news_id
        )
    )
    created = row is None
    if row is not None and row.status is ParseStatus.COMPLETED:
        logger.info("news_already_parsed", parsed_news_id=row.id, news_id=news_id)
        return row, False

    raw = _raw_news(news)
    if row is None:
        row = ParsedNews(
            tenant_id=ctx.tenant_id,
            source_news_id=news_id,
            original_title=raw["title"],
            original_content=raw["content"],
            title=raw["title"],
            summary=news.summary or "",
            category=raw["category"],
            status=ParseStatus.PENDING,
            parsed_by=ctx.user_id,
        )
        session.add(row)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            logger.warning("news_parse_conflict", news_id=news_id)
            raise InvalidTransitionError(
                f"News {news_id} is already being parsed by another request"
            ) from None

    ensure_transition("Parsed news", PARSE_TRANSITIONS, row.status, ParseStatus.PROCESSING)
    row.status = ParseStatus.PROCESSING
    row.error_message = None
    await session.commit()
    logger.info("news_parse_started", parsed_news_id=row.id, news_id=news_id)

    try:
        parsed = await parse_news(llm, raw)
    except UpstreamAIError as e:
        row.status = ParseStatus.FAILED
        row.error_message = e.message
        await session.commit()
        logger.warning("news_parse_failed", parsed_news_id=row.id, error=e.message)
        raise

    _apply_parsed(row, parsed)
    row.status = ParseStatus.COMPLETED
    row.parsed_at = datetime.now(UTC)
    await session.flush()
    logger.info(
        "news_parsed",
        parsed_news_id=row.id,
        category=row.category,
        sentiment=row.sentiment.value,
        relevance=row.relevance_score,
    )
    return row, created


async def list_parsed_news(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    status: ParseStatus | None = None,
    sentiment: Sentiment | None = None,
    category: str | None = None,
    geographic_relevance: GeographicLevel | None = None,
) -> Page:
    stmt = select(ParsedNews).where(ParsedNews.tenant_id == ctx.tenant_id)
    if status:
        stmt = stmt.where(ParsedNews.status == status)
    if sentiment:
        stmt = stmt.where(ParsedNews.sentiment == sentiment)
    if category:
        stmt = stmt.where(ParsedNews.category == category)
    if geographic_relevance:
        stmt = stmt.where(ParsedNews.geographic_relevance == geographic_relevance)
    stmt = stmt.order_by(ParsedNews.relevance_score.desc(), ParsedNews.created_at.desc())
    return await paginate(session, stmt, page, limit)


# ═══════════════════════════════════════════════════════════════
# Analysis stage
# ═══════════════════════════════════════════════════════════════
def _parsed_content(row: ParsedNews) -> ParsedContent:
    return {
        "title": row.title,
        "summary": row.summary or row.original_content[:1000],
        "category": row.category,
        "sentiment": row.sentiment.value,  # type: ignore[typeddict-item]
        "relevance_score": row.relevance_score,
        "impact_score": row.impact_score,
        "urgency_level": row.urgency_level.value,  # type: ignore[typeddict-item]
        "geographic_relevance": row.geographic_relevance.value,  # type: ignore[typeddict-item]
        "keywords": list(row.keywords or []),
    }


async def trigger_analysis(
    session: AsyncSession,
    ctx: TenantContext,
    parsed_news_id: str,
    llm: BaseChatModel,
    election_id: str | None = None,
) -> NewsAnalysis:
    """Create a new analysis for a parsed news item and run it to COMPLETED or FAILED."""
    parsed = await session.scalar(
        select(ParsedNews).where(
            ParsedNews.id == parsed_news_id, ParsedNews.tenant_id == ctx.tenant_id
        )
    )
    if parsed is None:
        raise NotFoundError("Parsed news")
    ensure_analyzable(parsed.status)

    local_context = await build_local_context(session, ctx, election_id)

    analysis = NewsAnalysis(
        tenant_id=ctx.tenant_id,
        parsed_news_id=parsed.id,
        election_id=election_id,
        status=AnalysisStatus.PENDING,
        local_context=dict(local_context),
        analyzed_by=ctx.user_id,
    )
    session.add(analysis)
    await session.commit()
    logger.info("analysis_started", analysis_id=analysis.id, parsed_news_id=parsed.id)

    try:
        output = await analyze_news(llm, _parsed_content(parsed), local_context)
    except UpstreamAIError as e:
        ensure_transition("Analysis", ANALYSIS_TRANSITIONS, analysis.status, AnalysisStatus.FAILED)
        analysis.status = AnalysisStatus.FAILED
        analysis.error_message = e.message
        await session.commit()
        logger.warning("analysis_failed", analysis_id=analysis.id, error=e.message)
        raise

    ensure_transition("Analysis", ANALYSIS_TRANSITIONS, analysis.status, AnalysisStatus.COMPLETED)
    analysis.sentiment = Sentiment(output["sentiment"])
    analysis.impact = output["impact"]
    analysis.impact_score = output["impact_score"]
    analysis.urgency_level = Urgency(output["urgency_level"])
    analysis.summary = output["summary"]
    analysis.key_points = output["key_points"]
    analysis.recommendations = output["recommendations"]
    analysis.risks = output.get("risks", [])
    analysis.status = AnalysisStatus.COMPLETED
    analysis.analyzed_at = datetime.now(UTC)
    await session.flush()
    logger.info(
        "analysis_completed",
        analysis_id=analysis.id,
        sentiment=output["sentiment"],
        impact_score=output["impact_score"],
    )
    return analysis


async def list_analyses(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    page: int,
    limit: int,
    status: AnalysisStatus | None = None,
) -> Page:
    stmt = select(NewsAnalysis).where(NewsAnalysis.tenant_id == ctx.tenant_id)
    if status:
        stmt = stmt.where(NewsAnalysis.status == status)
    stmt = stmt.order_by(NewsAnalysis.created_at.desc())
    return await paginate(session, stmt, page, limit)


async def get_analysis(
    session: AsyncSession, ctx: TenantContext, analysis_id: str, *, with_children: bool = False
) -> NewsAnalysis:
    stmt = select(NewsAnalysis).where(
        NewsAnalysis.id == analysis_id, NewsAnalysis.tenant_id == ctx.tenant_id
    )
    if with_children:
        stmt = stmt.options(
            selectinload(NewsAnalysis.parsed_news),
            selectinload(NewsAnalysis.action_plans),
            selectinload(NewsAnalysis.party_lines),
            selectinload(NewsAnalysis.speech_points),
        )
    analysis = await session.scalar(stmt)
    if analysis is None:
        raise NotFoundError("Analysis")
    return analysis
