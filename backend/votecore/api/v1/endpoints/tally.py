"""
Tally API endpoints for live results.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.database import get_db
from votecore.core.security import Principal
from votecore.services.access import require_admin
from votecore.services.tally_service import TallyReader
from votecore.services.vote_service import VotingLedger
from votecore.schemas.tally import (
    CandidateResult,
    LiveResultsResponse,
    TallyAuditResponse,
)
from votecore.api.v1.deps import error_responses, get_current_principal, require_authentication


router = APIRouter(responses=error_responses(403, 404))


@router.get("/{election_id}/live-results", response_model=LiveResultsResponse)
async def get_live_results(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Optional[Principal] = Depends(get_current_principal)
) -> LiveResultsResponse:
    """
    Get the current tally of an election.

    Intended for polling every ``poll_interval_seconds``. The total always
    equals the sum of the reported counts.
    """
    reader = TallyReader(db)
    results = await reader.live_results(election_id, current_principal)

    return LiveResultsResponse(
        election_id=results.election_id,
        title=results.title,
        status=results.status.value,
        total_votes=results.total_votes,
        results=[
            CandidateResult(
                candidate_id=count.candidate.id,
                name=count.candidate.name,
                party=count.candidate.party,
                photo_ref=count.candidate.photo_ref,
                vote_count=count.vote_count,
                percentage=results.percentage(count),
            )
            for count in results.counts
        ],
        as_of=results.as_of,
        poll_interval_seconds=results.poll_interval_seconds,
    )


@router.get("/{election_id}/tally/verify", response_model=TallyAuditResponse)
async def verify_tally(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> TallyAuditResponse:
    """
    Compare the running counters with a recount of the vote rows.
    Requires admin role.
    """
    require_admin(current_principal, "audit tallies")

    ledger = VotingLedger(db)
    await ledger.catalog.get_election(election_id, current_principal)

    counters = {str(k): v for k, v in (await ledger.get_tally(election_id)).items()}
    recount = {str(k): v for k, v in (await ledger.recount(election_id)).items()}

    return TallyAuditResponse(
        election_id=election_id,
        counters=counters,
        recount=recount,
        consistent=counters == recount,
    )
