"""
Parse and analysis endpoints.

POST /api/v1/nb/parse-news/{news_id}          - parse one raw news item
GET  /api/v1/nb/parsed-news                   - list parsed news
POST /api/v1/nb/analyze/{parsed_news_id}      - run a campaign analysis
GET  /api/v1/nb/analyses                      - list analyses
GET  /api/v1/nb/analyses/{analysis_id}        - analysis with generated children
"""

# No postponed annotations here: slowapi wraps these endpoints and FastAPI
# resolves string annotations against the wrapper's module.

from typing import Annotated

from fastapi import APIRouter, Body, Query, Request, Response, status

from app.api.v1.deps import (
    AnalyzerLLM,
    CurrentTenant,
    DbSession,
    Pagination,
    ParserLLM,
    PipelineOperator,
    page_response,
)
from app.core.config import get_settings
from app.core.security import limiter
from app.models.models import AnalysisStatus, GeographicLevel, ParseStatus, Sentiment
from app.schemas.schemas import (
    AnalysisDetailOut,
    AnalysisOut,
    AnalyzeRequest,
    Envelope,
    ParsedNewsOut,
)
from app.services import news_service

router = APIRouter(prefix="/nb", tags=["news"])
settings = get_settings()


@router.post("/parse-news/{news_id}", response_model=Envelope[ParsedNewsOut])
@limiter.limit(settings.ai_rate_limit)
async def parse_news(
    request: Request,
    response: Response,
    news_id: str,
    session: DbSession,
    ctx: PipelineOperator,
    llm: ParserLLM,
) -> dict:
    """Parse a raw news item. 201 when a new record was created, 200 otherwise."""
    row, created = await news_service.parse_news_item(session, ctx, news_id, llm)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return {"success": True, "data": row}


@router.get("/parsed-news", response_model=Envelope[list[ParsedNewsOut]])
async def list_parsed_news(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    status_filter: Annotated[ParseStatus | None, Query(alias="status")] = None,
    sentiment: Sentiment | None = None,
    category: str | None = None,
    geographic_relevance: Annotated[
        GeographicLevel | None, Query(alias="geographicRelevance")
    ] = None,
) -> dict:
    result = await news_service.list_parsed_news(
        session,
        ctx,
        page=paging.page,
        limit=paging.limit,
        status=status_filter,
        sentiment=sentiment,
        category=category,
        geographic_relevance=geographic_relevance,
    )
    return page_response(result)


@router.post(
    "/analyze/{parsed_news_id}",
    response_model=Envelope[AnalysisOut],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.ai_rate_limit)
async def analyze(
    request: Request,
    parsed_news_id: str,
    session: DbSession,
    ctx: PipelineOperator,
    llm: AnalyzerLLM,
    body: Annotated[AnalyzeRequest | None, Body()] = None,
) -> dict:
    election_id = body.election_id if body else None
    analysis = await news_service.trigger_analysis(
        session, ctx, parsed_news_id, llm, election_id=election_id
    )
    return {"success": True, "data": analysis}


@router.get("/analyses", response_model=Envelope[list[AnalysisOut]])
async def list_analyses(
    session: DbSession,
    ctx: CurrentTenant,
    paging: Pagination,
    status_filter: Annotated[AnalysisStatus | None, Query(alias="status")] = None,
) -> dict:
    result = await news_service.list_analyses(
        session, ctx, page=paging.page, limit=paging.limit, status=status_filter
    )
    return page_response(result)


@router.get("/analyses/{analysis_id}", response_model=Envelope[AnalysisDetailOut])
async def get_analysis(analysis_id: str, session: DbSession, ctx: CurrentTenant) -> dict:
    analysis = await news_service.get_analysis(session, ctx, analysis_id, with_children=True)
    return {"success": True, "data": analysis}
