"""
Shared pytest fixtures for unit and API tests.

Uses FakeListChatModel for deterministic LLM mocking (no API keys needed),
a throwaway SQLite database per test and an httpx.MockTransport in place of
the notification gateway.
"""

from __future__ import annotations

import asyncio
import json
import os

# Settings are cached on first import, so the environment must be ready first
os.environ["APP_ENV"] = "development"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"  # noqa: S105
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["NOTIFICATION_GATEWAY_URL"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from langchain_core.language_models.fake_chat_models import FakeListChatModel  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from app.agents.llm import get_analyzer_llm, get_parser_llm  # noqa: E402
from app.core.config import get_settings  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models.database import get_db, init_models  # noqa: E402
from app.models.models import (  # noqa: E402
    AnalysisStatus,
    Caste,
    CasteCategory,
    Election,
    NewsAnalysis,
    NewsItem,
    ParsedNews,
    ParseStatus,
    Party,
    Sentiment,
    Urgency,
)
from app.services.notification_service import (  # noqa: E402
    NotificationService,
    get_notification_service,
)

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"

PARSED_JSON = {
    "title": "State announces 2,000 crore irrigation package",
    "summary": "The state cabinet cleared an irrigation package for drought-hit districts.",
    "category": "agriculture",
    "sentiment": "NEGATIVE",
    "relevance_score": 82,
    "impact_score": 74,
    "urgency_level": "HIGH",
    "geographic_relevance": "DISTRICT",
    "keywords": ["irrigation", "drought", "farmers"],
}

ANALYSIS_JSON = {
    "sentiment": "NEGATIVE",
    "impact": "Farmers in the constituency feel the package skips their mandals.",
    "impact_score": 78,
    "urgency_level": "HIGH",
    "summary": "The opposition will use the package to claim neglect of our district.",
    "key_points": [
        "Package covers 12 districts, not ours",
        "Drought has hit 40% of local farms",
        "Our candidate raised irrigation in the assembly",
    ],
    "recommendations": [
        "Hold farmer meetings in affected mandals",
        "Publicise the candidate's assembly record",
        "Collect crop-loss data booth by booth",
    ],
    "risks": ["Appearing to oppose relief for other districts"],
}


def run(coro):
    return asyncio.run(coro)


# ── Database ────────────────────────────────────────────────
@pytest.fixture
def session_factory(tmp_path):
    """Fresh file-backed SQLite per test; NullPool so no connection outlives its event loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    run(init_models(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    run(engine.dispose())


@pytest.fixture
def db(session_factory):
    """Run `fn(session)` in its own committed transaction and return its result."""

    def _run(fn):
        async def _inner():
            async with session_factory() as session:
                result = await fn(session)
                await session.commit()
                return result

        return run(_inner())

    return _run


@pytest.fixture
def seeded(db) -> dict[str, str]:
    """Raw news (own, global, other tenant's) and one election with two parties and a caste category."""

    async def _seed(session):
        own = NewsItem(
            tenant_id=TENANT,
            title="Irrigation package announced",
            content="The state cabinet on Monday cleared a 2,000 crore irrigation package.",
            category="AGRICULTURE",
            source="The Hindu",
            geographic_level="STATE",
        )
        global_news = NewsItem(tenant_id=None, title="National fuel price hike", content="Fuel up.")
        foreign = NewsItem(tenant_id=OTHER_TENANT, title="Another tenant's news", content="x")
        election = Election(
            tenant_id=TENANT,
            name="Assembly 2026",
            state="Karnataka",
            district="Mandya",
            constituency_name="Maddur",
            total_parts=240,
            total_voters=210000,
            historical_results={"2021": {"winner": "Party A", "margin": 4120}},
        )
        session.add_all([own, global_news, foreign, election])
        await session.flush()
        session.add_all(
            [
                Party(election_id=election.id, name="Party A", symbol="Lamp"),
                Party(election_id=election.id, name="Party B", symbol="Wheel"),
                CasteCategory(
                    election_id=election.id,
                    name="OBC",
                    castes=[Caste(name="Vokkaliga"), Caste(name="Kuruba")],
                ),
            ]
        )
        return {
            "news_id": own.id,
            "global_news_id": global_news.id,
            "foreign_news_id": foreign.id,
            "election_id": election.id,
        }

    return db(_seed)


@pytest.fixture
def concurrent_writer(monkeypatch, session_factory):
    """Arm `fn(session)` to commit from a second session right before the next flush.

    Reproduces another request winning the race for a unique key.
    """

    def _arm(fn):
        original = AsyncSession.flush
        pending = {"armed": True}

        async def flush(self, *args, **kwargs):
            if pending["armed"]:
                pending["armed"] = False
                async with session_factory() as other:
                    await fn(other)
                    await other.commit()
            return await original(self, *args, **kwargs)

        monkeypatch.setattr(AsyncSession, "flush", flush)

    return _arm


@pytest.fixture
def make_parsed(db):
    """Insert a fresh news item plus its ParsedNews row in the given status."""

    def _make(status: ParseStatus = ParseStatus.COMPLETED, tenant_id: str = TENANT) -> str:
        async def _insert(session):
            news = NewsItem(tenant_id=tenant_id, title="Irrigation package announced")
            session.add(news)
            await session.flush()
            row = ParsedNews(
                tenant_id=tenant_id,
                source_news_id=news.id,
                original_title="Irrigation package announced",
                original_content="The state cabinet cleared a package.",
                title="Irrigation package announced",
                summary="Cabinet cleared a package.",
                category="AGRICULTURE",
                sentiment=Sentiment.NEGATIVE,
                status=status,
            )
            session.add(row)
            await session.flush()
            return row.id

        return db(_insert)

    return _make


@pytest.fixture
def make_analysis(db, make_parsed):
    """Insert an analysis directly, bypassing the LLM."""

    def _make(
        status: AnalysisStatus = AnalysisStatus.COMPLETED,
        sentiment: Sentiment = Sentiment.NEGATIVE,
        key_points: list[str] | None = None,
        tenant_id: str = TENANT,
    ) -> str:
        parsed_id = make_parsed(ParseStatus.COMPLETED, tenant_id=tenant_id)

        async def _insert(session):
            analysis = NewsAnalysis(
                tenant_id=tenant_id,
                parsed_news_id=parsed_id,
                status=status,
                sentiment=sentiment,
                impact="Moves farm votes.",
                impact_score=70,
                urgency_level=Urgency.HIGH,
                summary="Farmers are angry about being left out.",
                key_points=key_points if key_points is not None else ANALYSIS_JSON["key_points"],
                recommendations=ANALYSIS_JSON["recommendations"],
            )
            session.add(analysis)
            await session.flush()
            return analysis.id

        return db(_insert)

    return _make


# ── LLMs ────────────────────────────────────────────────────
@pytest.fixture
def parser_llm() -> FakeListChatModel:
    return FakeListChatModel(responses=[json.dumps(PARSED_JSON)])


@pytest.fixture
def analyzer_llm() -> FakeListChatModel:
    return FakeListChatModel(responses=[json.dumps(ANALYSIS_JSON)])


# ── Notification gateway ────────────────────────────────────
@pytest.fixture
def gateway() -> dict:
    """Captured gateway calls; set `status` to make the gateway fail."""
    return {"requests": [], "status": 202}


@pytest.fixture
def notifier(gateway) -> NotificationService:
    def handler(request: httpx.Request) -> httpx.Response:
        gateway["requests"].append(json.loads(request.content))
        return httpx.Response(gateway["status"], headers={"x-message-id": "msg-1"})

    settings = get_settings().model_copy(
        update={"notification_gateway_url": "https://gateway.test/v1"}
    )
    return NotificationService(settings=settings, transport=httpx.MockTransport(handler))


# ── API client ──────────────────────────────────────────────
@pytest.fixture
def client(session_factory, parser_llm, analyzer_llm, notifier):
    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_parser_llm] = lambda: parser_llm
    app.dependency_overrides[get_analyzer_llm] = lambda: analyzer_llm
    app.dependency_overrides[get_notification_service] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(role: str = "TENANT_ADMIN", tenant_id: str = TENANT, user_id: str = "user-1") -> dict:
    token = create_access_token(user_id, tenant_id, role, get_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Factory for bearer headers: auth_headers(role, tenant_id, user_id)."""
    return _auth


@pytest.fixture
def admin() -> dict:
    return _auth()
