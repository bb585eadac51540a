"""
Campaign analysis node: assesses a parsed news item against local context.

The model sees the parsed item plus the tenant's demographics, party field
and past results, and answers with sentiment, impact, key points and
recommendations. Generators downstream build every artifact from this
output, so empty key points or recommendations are treated as a failure.
"""

from __future__ import annotations

import json
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

    from app.agents.state import AnalysisOutput, LocalContext, ParsedContent

logger = get_logger(__name__)

ANALYZER_SYSTEM_PROMPT = """You are the chief strategist of an election campaign war room.

You receive one news item (already parsed) and the campaign's local context.
Assess what the news means for OUR campaign in THIS constituency and output ONE JSON
object with exactly these keys:
- sentiment: POSITIVE, NEGATIVE, NEUTRAL or MIXED (for our campaign)
- impact: 2-3 sentences on how this can move local voters
- impact_score: integer 0-100
- urgency_level: LOW, MEDIUM, HIGH or URGENT
- summary: one paragraph briefing for senior leaders
- key_points: 3-6 short factual points the cadre must know
- recommendations: 3-6 concrete actions, most important first
- risks: up to 3 things that could backfire

Be specific: use local names, numbers and dates where the context provides them.
Output ONLY valid JSON, no markdown fences."""


def _string_list(value: object, limit: int = 6) -> list[str]:
    if not isinstance(value, list):
        return []
    return [sanitize_for_display(str(v).strip()) for v in value if str(v).strip()][:limit]


async def analyze_news(
    llm: BaseChatModel, parsed: ParsedContent, context: LocalContext
) -> AnalysisOutput:
    """Run the analyzer model. Raises UpstreamAIError on provider or format failure."""
    messages = [
        SystemMessage(content=ANALYZER_SYSTEM_PROMPT),
        HumanMessage(
            content=(
                f"NEWS\nTitle: {parsed['title']}\nCategory: {parsed['category']}\n"
                f"Sentiment (desk): {parsed['sentiment']}\nSummary: {parsed['summary']}\n"
                f"Keywords: {', '.join(parsed['keywords'])}\n\n"
                f"LOCAL CONTEXT\n{json.dumps(context, default=str, ensure_ascii=False)}"
            )
        ),
    ]

    try:
        response = await llm.ainvoke(messages)
        data = parse_json_response(str(response.content))
    except Exception as e:
        logger.error("analysis_llm_error", title=parsed["title"][:80], error=str(e))
        raise UpstreamAIError(f"News analysis failed: {e}") from e

    key_points = _string_list(data.get("key_points"))
    recommendations = _string_list(data.get("recommendations"))
    if not key_points or not recommendations:
        logger.error("analysis_llm_incomplete", key_points=len(key_points), recs=len(recommendations))
        raise UpstreamAIError("News analysis returned no key points or recommendations")

    output: AnalysisOutput = {
        "sentiment": pick_label(data.get("sentiment"), SENTIMENTS, parsed["sentiment"]),  # type: ignore[typeddict-item]
        "impact": sanitize_for_display(str(data.get("impact") or "")),
        "impact_score": clamp_score(data.get("impact_score"), default=parsed["impact_score"]),
        "urgency_level": pick_label(data.get("urgency_level"), URGENCY_LEVELS, parsed["urgency_level"]),  # type: ignore[typeddict-item]
        "summary": sanitize_for_display(str(data.get("summary") or parsed["summary"])),
        "key_points": key_points,
        "recommendations": recommendations,
        "risks": _string_list(data.get("risks"), limit=3),
    }
    logger.info(
        "analysis_llm_complete",
        sentiment=output["sentiment"],
        impact_score=output["impact_score"],
        key_points=len(key_points),
    )
    return output
