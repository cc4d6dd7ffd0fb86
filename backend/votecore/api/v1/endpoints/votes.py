"""
Vote casting API endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.database import get_db
from votecore.core.security import Principal
from votecore.services.vote_service import VotingLedger
from votecore.schemas.vote import (
    VoteCastRequest,
    VoteCastResponse,
    VoteStatusResponse,
    RecentVoteResponse,
)
from votecore.api.v1.deps import error_responses, get_current_principal, require_authentication


router = APIRouter(responses=error_responses(403, 404, 409, 503))


@router.post("/{election_id}/vote", response_model=VoteCastResponse)
async def cast_vote(
    election_id: UUID,
    request: VoteCastRequest,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> VoteCastResponse:
    """
    Cast the caller's vote.

    Fails with a distinct error kind when the election is not open
    (``election_not_votable``), the candidate is not in the election
    (``invalid_candidate``), the voter id is not the caller's approved
    registration (``not_eligible``) or a vote already exists
    (``duplicate_vote``). Clients must not resubmit on ``duplicate_vote``.
    """
    ledger = VotingLedger(db)

    vote = await ledger.cast_vote(
        election_id=election_id,
        voter_id=request.voter_id,
        candidate_id=request.candidate_id,
        caller_user_id=current_principal.user_id,
    )

    return VoteCastResponse(
        success=True,
        vote_id=vote.id,
        election_id=vote.election_id,
        candidate_id=vote.candidate_id,
        cast_at=vote.cast_at,
    )


@router.get("/{election_id}/my-vote", response_model=VoteStatusResponse)
async def check_vote_status(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> VoteStatusResponse:
    """
    Check whether the caller has voted in an election.

    This is the authoritative answer; any client-side "voted" flag should be
    reconciled against it.
    """
    ledger = VotingLedger(db)
    vote = await ledger.find_vote(election_id, current_principal.user_id)

    if vote is None:
        return VoteStatusResponse(has_voted=False)

    return VoteStatusResponse(has_voted=True, vote_id=vote.id, cast_at=vote.cast_at)


@router.get("/{election_id}/votes/latest", response_model=List[RecentVoteResponse])
async def latest_votes(
    election_id: UUID,
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_principal: Optional[Principal] = Depends(get_current_principal)
) -> List[RecentVoteResponse]:
    """
    Get the most recent votes in an election, newest first.
    Voter identities are not included.
    """
    ledger = VotingLedger(db)
    recent = await ledger.latest_votes(election_id, current_principal, limit)

    return [
        RecentVoteResponse(
            vote_id=v.vote_id,
            candidate_id=v.candidate_id,
            candidate_name=v.candidate_name,
            cast_at=v.cast_at,
        )
        for v in recent
    ]
