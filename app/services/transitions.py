"""
Status state machines for the news-to-action pipeline.

Every entity moves forward only. The tables below are the single source of
truth for which transitions a service may perform; anything not listed is
rejected with InvalidTransitionError (HTTP 409).

  ParsedNews:      PENDING -> PROCESSING -> {COMPLETED, FAILED}
  NewsAnalysis:    PENDING -> {COMPLETED, FAILED}
  ActionPlan:      DRAFT -> APPROVED -> IN_PROGRESS -> COMPLETED
                   (any non-terminal state -> CANCELLED)
  Broadcast:       {PENDING, SCHEDULED} -> SENT

PartyLine.is_active and SpeechPoint.is_approved are one-way booleans and are
guarded directly in services/approvals.py.
"""

from __future__ import annotations

import enum

from app.core.errors import InvalidTransitionError
from app.models.models import (
    ActionPlanStatus,
    AnalysisStatus,
    BroadcastStatus,
    ParseStatus,
)

PARSE_TRANSITIONS: dict[ParseStatus, frozenset[ParseStatus]] = {
    ParseStatus.PENDING: frozenset([ParseStatus.PROCESSING]),
    ParseStatus.PROCESSING: frozenset([ParseStatus.COMPLETED, ParseStatus.FAILED]),
    # A failed parse may be picked up again by an explicit re-parse
    ParseStatus.FAILED: frozenset([ParseStatus.PROCESSING]),
    ParseStatus.COMPLETED: frozenset(),
}

ANALYSIS_TRANSITIONS: dict[AnalysisStatus, frozenset[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset([AnalysisStatus.COMPLETED, AnalysisStatus.FAILED]),
    AnalysisStatus.COMPLETED: frozenset(),
    AnalysisStatus.FAILED: frozenset(),
}

ACTION_PLAN_TRANSITIONS: dict[ActionPlanStatus, frozenset[ActionPlanStatus]] = {
    ActionPlanStatus.DRAFT: frozenset([ActionPlanStatus.APPROVED, ActionPlanStatus.CANCELLED]),
    ActionPlanStatus.APPROVED: frozenset(
        [ActionPlanStatus.IN_PROGRESS, ActionPlanStatus.CANCELLED]
    ),
    ActionPlanStatus.IN_PROGRESS: frozenset(
        [ActionPlanStatus.COMPLETED, ActionPlanStatus.CANCELLED]
    ),
    ActionPlanStatus.COMPLETED: frozenset(),
    ActionPlanStatus.CANCELLED: frozenset(),
}

BROADCAST_TRANSITIONS: dict[BroadcastStatus, frozenset[BroadcastStatus]] = {
    BroadcastStatus.PENDING: frozenset([BroadcastStatus.SENT]),
    BroadcastStatus.SCHEDULED: frozenset([BroadcastStatus.SENT]),
    BroadcastStatus.SENT: frozenset(),
}

# Parsed news may be analysed before parsing finished (raw content) or after it
ANALYZABLE_PARSE_STATES = frozenset([ParseStatus.PENDING, ParseStatus.COMPLETED])


def can_transition(table: dict, current: enum.Enum, target: enum.Enum) -> bool:
    return target in table.get(current, frozenset())


def ensure_transition(entity: str, table: dict, current: enum.Enum, target: enum.Enum) -> None:
    """Raise InvalidTransitionError unless `current -> target` is listed in `table`."""
    if not can_transition(table, current, target):
        raise InvalidTransitionError(
            f"{entity} cannot move from {current.value} to {target.value}"
        )


def ensure_analyzable(status: ParseStatus) -> None:
    if status not in ANALYZABLE_PARSE_STATES:
        raise InvalidTransitionError(
            f"Parsed news in status {status.value} cannot be analysed; "
            "it must be PENDING or COMPLETED"
        )


def ensure_generatable(status: AnalysisStatus) -> None:
    if status is not AnalysisStatus.COMPLETED:
        raise InvalidTransitionError(
            f"Analysis is {status.value}; generation requires a COMPLETED analysis"
        )
