"""
Tenant-local context for the analyzer: demographics, caste mix, party field
and past results.

The election and party tables belong to the election service; this module
only reads them. Without an election the analyzer still runs, just with an
empty context.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.agents.state import LocalContext
from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.core.security import TenantContext
from app.models.models import CasteCategory, Election

logger = get_logger(__name__)


def empty_context() -> LocalContext:
    return {
        "demographics": {},
        "caste_analysis": {},
        "party_context": {},
        "historical_context": {},
    }


async def build_local_context(
    session: AsyncSession, ctx: TenantContext, election_id: str | None
) -> LocalContext:
    if not election_id:
        return empty_context()

    election = await session.scalar(
        select(Election)
        .where(Election.id == election_id, Election.tenant_id == ctx.tenant_id)
        .options(
            selectinload(Election.parties),
            selectinload(Election.caste_categories).selectinload(CasteCategory.castes),
        )
    )
    if election is None:
        raise NotFoundError("Election")

    context: LocalContext = {
        "demographics": {
            "state": election.state,
            "district": election.district,
            "constituency": election.constituency_name,
            "total_parts": election.total_parts,
            "total_voters": election.total_voters,
        },
        "caste_analysis": {
            "categories": [
                {"name": c.name, "castes": [caste.name for caste in c.castes]}
                for c in election.caste_categories
            ],
        },
        "party_context": {
            "parties": [{"name": p.name, "symbol": p.symbol} for p in election.parties],
        },
        "historical_context": dict(election.historical_results or {}),
    }
    logger.info(
        "local_context_built",
        election_id=election_id,
        parties=len(election.parties),
        has_history=bool(context["historical_context"]),
    )
    return context
