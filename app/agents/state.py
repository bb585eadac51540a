"""
Typed payloads exchanged between the services and the LLM nodes.

Design principle: the nodes receive plain data and return plain data; all
persistence and status bookkeeping stays in the services.
"""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

SentimentLabel = Literal["POSITIVE", "NEGATIVE", "NEUTRAL", "MIXED"]
UrgencyLabel = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]


class RawNews(TypedDict):
    title: str
    content: str
    category: str
    source: str
    geographic_level: str


class ParsedContent(TypedDict):
    title: str
    summary: str
    category: str
    sentiment: SentimentLabel
    relevance_score: int  # 0-100
    impact_score: int  # 0-100
    urgency_level: UrgencyLabel
    geographic_relevance: Literal["LOCAL", "DISTRICT", "STATE", "NATIONAL"]
    keywords: list[str]


class LocalContext(TypedDict):
    """Tenant-local background handed to the analyzer."""

    demographics: dict
    caste_analysis: dict
    party_context: dict
    historical_context: dict


class AnalysisOutput(TypedDict):
    sentiment: SentimentLabel
    impact: str  # narrative impact on the tenant's campaign
    impact_score: int  # 0-100
    urgency_level: UrgencyLabel
    summary: str
    key_points: list[str]
    recommendations: list[str]
    risks: NotRequired[list[str]]
