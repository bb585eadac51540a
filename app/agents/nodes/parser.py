"""
News parser node: turns a raw news item into a structured record.

Extracts a clean title, a short summary, category, sentiment, relevance,
impact, urgency, geographic reach and keywords. Output is clamped and
normalised so a sloppy model answer never reaches the database unchecked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

from app.agents.llm import (
    SENTIMENTS,
    URGENCY_LEVELS,
    clamp_score,
    parse_json_response,
    pick_label,
)
from app.core.errors import UpstreamAIError
from app.core.logging import get_logger
from app.core.security import sanitize_for_display

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

    from app.agents.state import ParsedContent, RawNews

logger = get_logger(__name__)

_VALID_CATEGORIES = frozenset(
    ["POLITICS", "GOVERNANCE", "ECONOMY", "WELFARE_SCHEME", "INFRASTRUCTURE", "LAW_ORDER",
     "AGRICULTURE", "EDUCATION", "HEALTH", "SOCIAL", "GENERAL"]
)
_GEO_LEVELS = frozenset(["LOCAL", "DISTRICT", "STATE", "NATIONAL"])

PARSER_SYSTEM_PROMPT = """You are a political news desk analyst for an Indian election campaign.

Read the news item and output ONE JSON object with exactly these keys:
- title: a clean headline, max 120 chars
- summary: 2-3 sentences, neutral tone
- category: one of POLITICS, GOVERNANCE, ECONOMY, WELFARE_SCHEME, INFRASTRUCTURE,
  LAW_ORDER, AGRICULTURE, EDUCATION, HEALTH, SOCIAL, GENERAL
- sentiment: POSITIVE, NEGATIVE, NEUTRAL or MIXED (towards the ruling establishment)
- relevance_score: integer 0-100, how much this matters to a campaign
- impact_score: integer 0-100, how strongly it can move voters
- urgency_level: LOW, MEDIUM, HIGH or URGENT
- geographic_relevance: LOCAL, DISTRICT, STATE or NATIONAL
- keywords: up to 8 short keywords

Output ONLY valid JSON, no markdown fences."""


def normalize_parsed(data: dict, fallback: RawNews) -> ParsedContent:
    """Coerce a model answer into a valid ParsedContent, filling gaps from the raw item."""
    keywords = data.get("keywords") or []
    if not isinstance(keywords, list):
        keywords = [str(keywords)]

    return {
        "title": sanitize_for_display(str(data.get("title") or fallback["title"]))[:500],
        "summary": sanitize_for_display(str(data.get("summary") or "")),
        "category": pick_label(data.get("category"), _VALID_CATEGORIES, "GENERAL"),
        "sentiment": pick_label(data.get("sentiment"), SENTIMENTS, "NEUTRAL"),  # type: ignore[typeddict-item]
        "relevance_score": clamp_score(data.get("relevance_score")),
        "impact_score": clamp_score(data.get("impact_score")),
        "urgency_level": pick_label(data.get("urgency_level"), URGENCY_LEVELS, "MEDIUM"),  # type: ignore[typeddict-item]
        "geographic_relevance": pick_label(  # type: ignore[typeddict-item]
            data.get("geographic_relevance") or fallback["geographic_level"], _GEO_LEVELS, "STATE"
        ),
        "keywords": [str(k).strip() for k in keywords if str(k).strip()][:8],
    }


async def parse_news(llm: BaseChatModel, raw: RawNews) -> ParsedContent:
    """Run the parser model over one raw news item. Raises UpstreamAIError on any failure."""
    messages = [
        SystemMessage(content=PARSER_SYSTEM_PROMPT),
        HumanMessage(
            content=(
                f"Title: {raw['title']}\n"
                f"Source: {raw['source']}\n"
                f"Category hint: {raw['category']}\n"
                f"Content: {raw['content'][:4000]}"
            )
        ),
    ]

    try:
        response = await llm.ainvoke(messages)
        data = parse_json_response(str(response.content))
    except Exception as e:
        logger.error("news_parse_llm_error", title=raw["title"][:80], error=str(e))
        raise UpstreamAIError(f"News parsing failed: {e}") from e

    parsed = normalize_parsed(data, raw)
    logger.info(
        "news_parse_llm_complete",
        category=parsed["category"],
        sentiment=parsed["sentiment"],
        relevance=parsed["relevance_score"],
    )
    return parsed
