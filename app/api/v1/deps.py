"""
Shared FastAPI dependencies for v1 API routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Query
from langchain_core.language_models.chat_models import BaseChatModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.agents.llm import get_analyzer_llm, get_parser_llm
from app.core.config import Settings, get_settings
from app.core.security import (
    APPROVER_ROLES,
    BROADCASTER_ROLES,
    PIPELINE_ROLES,
    TenantContext,
    get_tenant_context,
    require_roles,
)
from app.models.database import get_db
from app.services.listing import Page
from app.services.notification_service import NotificationService, get_notification_service

# Re-export for convenience in route files
AppSettings = Annotated[Settings, Depends(get_settings)]
DbSession = Annotated[AsyncSession, Depends(get_db)]

CurrentTenant = Annotated[TenantContext, Depends(get_tenant_context)]
PipelineOperator = Annotated[TenantContext, Depends(require_roles(PIPELINE_ROLES))]
Approver = Annotated[TenantContext, Depends(require_roles(APPROVER_ROLES))]
Broadcaster = Annotated[TenantContext, Depends(require_roles(BROADCASTER_ROLES))]

ParserLLM = Annotated[BaseChatModel, Depends(get_parser_llm)]
AnalyzerLLM = Annotated[BaseChatModel, Depends(get_analyzer_llm)]
Notifier = Annotated[NotificationService, Depends(get_notification_service)]


@dataclass
class PageParams:
    page: int
    limit: int


def get_page_params(
    settings: AppSettings,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> PageParams:
    """Default from settings; oversized limits are clamped rather than rejected."""
    size = limit or settings.default_page_size
    return PageParams(page=page, limit=min(size, settings.max_page_size))


Pagination = Annotated[PageParams, Depends(get_page_params)]


def page_response(result: Page) -> dict:
    return {"success": True, "data": result.items, "meta": result.meta}
