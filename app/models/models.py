"""
SQLAlchemy 2.0 ORM models.

Read-only collaborators: NewsItem (raw news store), Election, Party,
CasteCategory, Caste.
Pipeline entities: ParsedNews, NewsAnalysis, ActionPlan, PartyLine,
SpeechPoint, CampaignSpeech, Broadcast. All pipeline rows are tenant scoped.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    Naive input is taken as UTC. SQLite drops tzinfo on the way in, so naive
    values read back are tagged UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=_now, onupdate=_now
    )


# ── Enums ───────────────────────────────────────────────────
class ParseStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class AnalysisStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Sentiment(str, enum.Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    MIXED = "MIXED"


class Urgency(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class GeographicLevel(str, enum.Enum):
    LOCAL = "LOCAL"
    DISTRICT = "DISTRICT"
    STATE = "STATE"
    NATIONAL = "NATIONAL"


class OrgLevel(str, enum.Enum):
    """Five-tier organisational hierarchy used for action plans and party lines."""

    CENTRAL_COMMITTEE = "CENTRAL_COMMITTEE"
    CONSTITUENCY_HEAD = "CONSTITUENCY_HEAD"
    SECTOR_OFFICER = "SECTOR_OFFICER"
    BOOTH_INCHARGE = "BOOTH_INCHARGE"
    VOLUNTEER = "VOLUNTEER"


class ActionPlanStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SpeechPointType(str, enum.Enum):
    KEY_MESSAGE = "KEY_MESSAGE"
    COUNTER_NARRATIVE = "COUNTER_NARRATIVE"
    LOCAL_ISSUE = "LOCAL_ISSUE"
    SCHEME_HIGHLIGHT = "SCHEME_HIGHLIGHT"
    EMOTIONAL_APPEAL = "EMOTIONAL_APPEAL"
    FACT_STAT = "FACT_STAT"


class SpeechPriority(str, enum.Enum):
    MUST_MENTION = "MUST_MENTION"
    RECOMMENDED = "RECOMMENDED"
    OPTIONAL = "OPTIONAL"


class SpeechType(str, enum.Enum):
    RALLY = "RALLY"
    DOOR_TO_DOOR = "DOOR_TO_DOOR"
    MEDIA = "MEDIA"
    MEETING = "MEETING"


class BroadcastChannel(str, enum.Enum):
    APP = "APP"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"


class BroadcastStatus(str, enum.Enum):
    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    SENT = "SENT"


class BroadcastPriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


# ── Read-only collaborators ─────────────────────────────────
class NewsItem(Base):
    """Raw news populated by the ingestion service. tenant_id NULL means global news."""

    __tablename__ = "news_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(500))
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source: Mapped[str | None] = mapped_column(String(200), nullable=True)
    geographic_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


class Election(Base):
    __tablename__ = "elections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(200))
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    constituency_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    total_parts: Mapped[int] = mapped_column(Integer, default=0)
    total_voters: Mapped[int] = mapped_column(Integer, default=0)
    historical_results: Mapped[dict] = mapped_column(JSON, default=dict)

    parties: Mapped[list[Party]] = relationship(back_populates="election")
    caste_categories: Mapped[list[CasteCategory]] = relationship(back_populates="election")


class Party(Base):
    __tablename__ = "parties"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    election_id: Mapped[str] = mapped_column(ForeignKey("elections.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    symbol: Mapped[str | None] = mapped_column(String(100), nullable=True)

    election: Mapped[Election] = relationship(back_populates="parties")


class CasteCategory(Base):
    __tablename__ = "caste_categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    election_id: Mapped[str] = mapped_column(ForeignKey("elections.id"), index=True)
    name: Mapped[str] = mapped_column(String(100))

    election: Mapped[Election] = relationship(back_populates="caste_categories")
    castes: Mapped[list[Caste]] = relationship(back_populates="category")


class Caste(Base):
    __tablename__ = "castes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    category_id: Mapped[str] = mapped_column(ForeignKey("caste_categories.id"), index=True)
    name: Mapped[str] = mapped_column(String(100))

    category: Mapped[CasteCategory] = relationship(back_populates="castes")


# ── Pipeline entities ───────────────────────────────────────
class ParsedNews(TimestampMixin, Base):
    __tablename__ = "nb_parsed_news"
    __table_args__ = (UniqueConstraint("tenant_id", "source_news_id", name="uq_parsed_news_source"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    source_news_id: Mapped[str] = mapped_column(ForeignKey("news_items.id"))
    original_title: Mapped[str] = mapped_column(String(500))
    original_content: Mapped[str] = mapped_column(Text, default="")
    title: Mapped[str] = mapped_column(String(500))
    summary: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(50), default="GENERAL")
    sentiment: Mapped[Sentiment] = mapped_column(Enum(Sentiment), default=Sentiment.NEUTRAL)
    relevance_score: Mapped[int] = mapped_column(Integer, default=50)
    impact_score: Mapped[int] = mapped_column(Integer, default=50)
    urgency_level: Mapped[Urgency] = mapped_column(Enum(Urgency), default=Urgency.MEDIUM)
    geographic_relevance: Mapped[GeographicLevel] = mapped_column(
        Enum(GeographicLevel), default=GeographicLevel.STATE
    )
    keywords: Mapped[list] = mapped_column(JSON, default=list)
    status: Mapped[ParseStatus] = mapped_column(Enum(ParseStatus), default=ParseStatus.PENDING)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    parsed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    parsed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    source_news: Mapped[NewsItem] = relationship()
    analyses: Mapped[list[NewsAnalysis]] = relationship(back_populates="parsed_news")


class NewsAnalysis(TimestampMixin, Base):
    __tablename__ = "nb_news_analyses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    parsed_news_id: Mapped[str] = mapped_column(ForeignKey("nb_parsed_news.id"))
    election_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[AnalysisStatus] = mapped_column(
        Enum(AnalysisStatus), default=AnalysisStatus.PENDING
    )
    local_context: Mapped[dict] = mapped_column(JSON, default=dict)
    # Structured output, populated on COMPLETED
    sentiment: Mapped[Sentiment | None] = mapped_column(Enum(Sentiment), nullable=True)
    impact: Mapped[str | None] = mapped_column(Text, nullable=True)
    impact_score: Mapped[int] = mapped_column(Integer, default=50)
    urgency_level: Mapped[Urgency] = mapped_column(Enum(Urgency), default=Urgency.MEDIUM)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    key_points: Mapped[list] = mapped_column(JSON, default=list)
    recommendations: Mapped[list] = mapped_column(JSON, default=list)
    risks: Mapped[list] = mapped_column(JSON, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    analyzed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    analyzed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    parsed_news: Mapped[ParsedNews] = relationship(back_populates="analyses")
    action_plans: Mapped[list[ActionPlan]] = relationship(back_populates="analysis")
    party_lines: Mapped[list[PartyLine]] = relationship(back_populates="analysis")
    speech_points: Mapped[list[SpeechPoint]] = relationship(back_populates="analysis")


class ActionPlan(TimestampMixin, Base):
    __tablename__ = "nb_action_plans"
    __table_args__ = (
        UniqueConstraint("analysis_id", "target_role", "batch_no", name="uq_action_plan_batch"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    analysis_id: Mapped[str] = mapped_column(ForeignKey("nb_news_analyses.id"))
    election_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    batch_no: Mapped[int] = mapped_column(Integer)
    target_role: Mapped[OrgLevel] = mapped_column(Enum(OrgLevel))
    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str] = mapped_column(Text, default="")
    action_items: Mapped[list] = mapped_column(JSON, default=list)
    priority: Mapped[Urgency] = mapped_column(Enum(Urgency), default=Urgency.MEDIUM)
    status: Mapped[ActionPlanStatus] = mapped_column(
        Enum(ActionPlanStatus), default=ActionPlanStatus.DRAFT
    )
    estimated_impact: Mapped[int] = mapped_column(Integer, default=50)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    analysis: Mapped[NewsAnalysis] = relationship(back_populates="action_plans")


class PartyLine(TimestampMixin, Base):
    __tablename__ = "nb_party_lines"
    __table_args__ = (
        UniqueConstraint("analysis_id", "level", "batch_no", name="uq_party_line_batch"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    analysis_id: Mapped[str] = mapped_column(ForeignKey("nb_news_analyses.id"))
    election_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    batch_no: Mapped[int] = mapped_column(Integer)
    level: Mapped[OrgLevel] = mapped_column(Enum(OrgLevel))
    topic: Mapped[str] = mapped_column(String(200))
    what_to_say: Mapped[list] = mapped_column(JSON, default=list)
    what_not_to_say: Mapped[list] = mapped_column(JSON, default=list)
    key_messages: Mapped[list] = mapped_column(JSON, default=list)
    tone_guidance: Mapped[str] = mapped_column(String(300), default="")
    target_audience: Mapped[list] = mapped_column(JSON, default=list)
    priority: Mapped[int] = mapped_column(Integer, default=5)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    analysis: Mapped[NewsAnalysis] = relationship(back_populates="party_lines")


class SpeechPoint(TimestampMixin, Base):
    __tablename__ = "nb_speech_points"
    __table_args__ = (
        UniqueConstraint("analysis_id", "point_type", "batch_no", name="uq_speech_point_batch"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    analysis_id: Mapped[str] = mapped_column(ForeignKey("nb_news_analyses.id"))
    election_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    batch_no: Mapped[int] = mapped_column(Integer)
    point_type: Mapped[SpeechPointType] = mapped_column(Enum(SpeechPointType))
    title: Mapped[str] = mapped_column(String(300))
    content: Mapped[str] = mapped_column(Text, default="")
    delivery_guidance: Mapped[str] = mapped_column(String(300), default="")
    priority: Mapped[SpeechPriority] = mapped_column(
        Enum(SpeechPriority), default=SpeechPriority.RECOMMENDED
    )
    impact_score: Mapped[int] = mapped_column(Integer, default=50)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    used_in_campaigns: Mapped[int] = mapped_column(Integer, default=0)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    analysis: Mapped[NewsAnalysis] = relationship(back_populates="speech_points")


class CampaignSpeech(TimestampMixin, Base):
    __tablename__ = "nb_campaign_speeches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    speech_point_id: Mapped[str] = mapped_column(ForeignKey("nb_speech_points.id"))
    election_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    speech_type: Mapped[SpeechType] = mapped_column(Enum(SpeechType), default=SpeechType.RALLY)
    venue: Mapped[str] = mapped_column(String(300), default="")
    scheduled_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    target_audience: Mapped[list] = mapped_column(JSON, default=list)
    estimated_audience_size: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    speech_point: Mapped[SpeechPoint] = relationship()


class Broadcast(TimestampMixin, Base):
    __tablename__ = "nb_broadcasts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    party_line_id: Mapped[str] = mapped_column(ForeignKey("nb_party_lines.id"))
    channel: Mapped[BroadcastChannel] = mapped_column(
        Enum(BroadcastChannel), default=BroadcastChannel.APP
    )
    target_level: Mapped[OrgLevel] = mapped_column(Enum(OrgLevel))
    target_areas: Mapped[list] = mapped_column(JSON, default=list)
    message: Mapped[str] = mapped_column(Text, default="")
    priority: Mapped[BroadcastPriority] = mapped_column(
        Enum(BroadcastPriority), default=BroadcastPriority.NORMAL
    )
    status: Mapped[BroadcastStatus] = mapped_column(
        Enum(BroadcastStatus), default=BroadcastStatus.PENDING
    )
    scheduled_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sent_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    party_line: Mapped[PartyLine] = relationship()
