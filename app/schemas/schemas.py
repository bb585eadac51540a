"""
Pydantic v2 schemas for API request/response validation.

Field names are snake_case in Python and camelCase on the wire. Output models
read straight from ORM rows (from_attributes).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.models import (
    ActionPlanStatus,
    AnalysisStatus,
    BroadcastChannel,
    BroadcastPriority,
    BroadcastStatus,
    GeographicLevel,
    OrgLevel,
    ParseStatus,
    Sentiment,
    SpeechPointType,
    SpeechPriority,
    SpeechType,
    Urgency,
)

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Envelope ────────────────────────────────────────────────
class PageMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    data: T
    meta: PageMeta | None = None


# ── Parse / analysis ────────────────────────────────────────
class ParsedNewsOut(CamelModel):
    id: str
    source_news_id: str
    original_title: str
    title: str
    summary: str
    category: str
    sentiment: Sentiment
    relevance_score: int
    impact_score: int
    urgency_level: Urgency
    geographic_relevance: GeographicLevel
    keywords: list[str] = []
    status: ParseStatus
    error_message: str | None = None
    parsed_at: datetime | None = None
    parsed_by: str | None = None
    created_at: datetime


class AnalyzeRequest(CamelModel):
    election_id: str | None = None


class AnalysisOut(CamelModel):
    id: str
    parsed_news_id: str
    election_id: str | None = None
    status: AnalysisStatus
    sentiment: Sentiment | None = None
    impact: str | None = None
    impact_score: int
    urgency_level: Urgency
    summary: str | None = None
    key_points: list[str] = []
    recommendations: list[str] = []
    risks: list[str] = []
    local_context: dict[str, Any] = {}
    error_message: str | None = None
    analyzed_at: datetime | None = None
    analyzed_by: str | None = None
    created_at: datetime


# ── Generated artifacts ─────────────────────────────────────
class ActionPlanOut(CamelModel):
    id: str
    analysis_id: str
    election_id: str | None = None
    batch_no: int
    target_role: OrgLevel
    title: str
    description: str
    action_items: list[dict[str, Any]] = []
    priority: Urgency
    status: ActionPlanStatus
    estimated_impact: int
    created_by: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime


class ActionPlanStatusRequest(CamelModel):
    status: ActionPlanStatus


class PartyLineOut(CamelModel):
    id: str
    analysis_id: str
    election_id: str | None = None
    batch_no: int
    level: OrgLevel
    topic: str
    what_to_say: list[str] = []
    what_not_to_say: list[str] = []
    key_messages: list[str] = []
    tone_guidance: str
    target_audience: list[str] = []
    priority: int
    is_active: bool
    created_by: str | None = None
    approved_by: str | None = None
    published_at: datetime | None = None
    created_at: datetime


class SpeechPointOut(CamelModel):
    id: str
    analysis_id: str
    election_id: str | None = None
    batch_no: int
    point_type: SpeechPointType
    title: str
    content: str
    delivery_guidance: str
    priority: SpeechPriority
    impact_score: int
    is_approved: bool
    used_in_campaigns: int
    created_by: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime


class AnalysisDetailOut(AnalysisOut):
    parsed_news: ParsedNewsOut
    action_plans: list[ActionPlanOut] = []
    party_lines: list[PartyLineOut] = []
    speech_points: list[SpeechPointOut] = []


# ── Campaign speeches ───────────────────────────────────────
class CampaignSpeechCreate(CamelModel):
    speech_point_id: str
    election_id: str | None = None
    speech_type: SpeechType | None = None
    venue: str = Field(default="", max_length=300)
    scheduled_at: datetime | None = None
    target_audience: list[str] = []
    estimated_audience_size: int = Field(default=0, ge=0)
    notes: str | None = Field(default=None, max_length=2000)


class CampaignSpeechOut(CamelModel):
    id: str
    speech_point_id: str
    election_id: str | None = None
    speech_type: SpeechType
    venue: str
    scheduled_at: datetime | None = None
    target_audience: list[str] = []
    estimated_audience_size: int
    status: str
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime


# ── Broadcasts ──────────────────────────────────────────────
class BroadcastCreate(CamelModel):
    party_line_id: str
    channel: BroadcastChannel | None = None
    target_level: OrgLevel | None = None
    message: str | None = Field(default=None, max_length=4000)
    target_areas: list[str] = []
    scheduled_at: datetime | None = None
    priority: BroadcastPriority | None = None


class BroadcastOut(CamelModel):
    id: str
    party_line_id: str
    channel: BroadcastChannel
    target_level: OrgLevel
    target_areas: list[str] = []
    message: str
    priority: BroadcastPriority
    status: BroadcastStatus
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    created_by: str | None = None
    sent_by: str | None = None
    created_at: datetime


# ── Dashboard ───────────────────────────────────────────────
class TotalCount(CamelModel):
    total: int


class AnalysisCounts(CamelModel):
    total: int
    pending: int
    completed: int
    failed: int


class ApprovedCounts(CamelModel):
    total: int
    approved: int


class ActiveCounts(CamelModel):
    total: int
    active: int


class SentCounts(CamelModel):
    total: int
    sent: int


class DashboardStats(CamelModel):
    parsed_news: TotalCount
    analyses: AnalysisCounts
    action_plans: ApprovedCounts
    party_lines: ActiveCounts
    speech_points: ApprovedCounts
    campaign_speeches: TotalCount
    broadcasts: SentCounts


class DashboardOut(CamelModel):
    stats: DashboardStats
    recent_parsed_news: list[ParsedNewsOut]
    recent_analyses: list[AnalysisOut]
    recent_action_plans: list[ActionPlanOut]


# ── Health check ────────────────────────────────────────────
class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str = "0.1.0"
    environment: str
    database: str = "connected"
