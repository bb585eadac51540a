"""
Chat model factories, exposed as FastAPI dependencies.

Tiered model routing:
  - Flash for parsing raw news (cheap, high volume)
  - Pro for campaign analysis (fewer calls, needs reasoning)

Tests override these dependencies with FakeListChatModel.
"""

from __future__ import annotations

import json
import re

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI

from app.core.config import get_settings

_FENCE_START = re.compile(r"^```(?:json)?\s*")
_FENCE_END = re.compile(r"\s*```$")


def get_parser_llm() -> BaseChatModel:
    settings = get_settings()
    return ChatGoogleGenerativeAI(
        model=settings.model_parser,
        temperature=0,
        google_api_key=settings.google_api_key,
    )


def get_analyzer_llm() -> BaseChatModel:
    settings = get_settings()
    return ChatGoogleGenerativeAI(
        model=settings.model_analyzer,
        temperature=0.2,
        google_api_key=settings.google_api_key,
    )


def parse_json_response(text: str) -> dict:
    """Decode a JSON object from model output, tolerating ```json fences."""
    raw_text = _FENCE_START.sub("", text.strip())
    raw_text = _FENCE_END.sub("", raw_text).strip()
    parsed = json.loads(raw_text)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


SENTIMENTS = frozenset(["POSITIVE", "NEGATIVE", "NEUTRAL", "MIXED"])
URGENCY_LEVELS = frozenset(["LOW", "MEDIUM", "HIGH", "URGENT"])


def clamp_score(value: object, default: int = 50) -> int:
    """Coerce a model-supplied score into the 0-100 range."""
    try:
        score = int(round(float(value)))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(0, min(100, score))


def pick_label(value: object, allowed: frozenset[str], default: str) -> str:
    label = str(value or "").strip().upper()
    return label if label in allowed else default
