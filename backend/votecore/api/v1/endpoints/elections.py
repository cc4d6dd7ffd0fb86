"""
Election catalog API endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.database import get_db
from votecore.core.security import Principal
from votecore.models.election import Candidate, Election, ElectionStatus
from votecore.services.election_service import ElectionCatalog
from votecore.services.tally_service import TallyReader
from votecore.schemas.election import (
    CandidateCreate,
    CandidateResponse,
    CandidateTallyResponse,
    ElectionCreate,
    ElectionDetailResponse,
    ElectionResponse,
    PublishUpdate,
)
from votecore.api.v1.deps import error_responses, get_current_principal, require_authentication


router = APIRouter(responses=error_responses(403, 404))


def election_response(election: Election, election_status: ElectionStatus) -> ElectionResponse:
    return ElectionResponse(
        id=election.id,
        title=election.title,
        description=election.description,
        start_at=election.start_at,
        end_at=election.end_at,
        published=election.published,
        status=election_status.value,
        total_candidates=len(election.candidates),
        created_at=election.created_at,
    )


def candidate_response(candidate: Candidate) -> CandidateResponse:
    return CandidateResponse(
        id=candidate.id,
        election_id=candidate.election_id,
        name=candidate.name,
        party=candidate.party,
        photo_ref=candidate.photo_ref,
        created_at=candidate.created_at,
    )


@router.get("", response_model=List[ElectionResponse])
async def list_elections(
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> List[ElectionResponse]:
    """
    Get all elections with their current status.
    Unpublished elections are only visible to admins.
    """
    catalog = ElectionCatalog(db)

    return [
        election_response(election, election_status)
        async for election, election_status in catalog.list_elections(current_principal)
    ]


@router.post("", response_model=ElectionResponse, status_code=status.HTTP_201_CREATED)
async def create_election(
    election_data: ElectionCreate,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> ElectionResponse:
    """
    Create a new, unpublished election.
    Requires admin role.
    """
    catalog = ElectionCatalog(db)
    election = await catalog.create_election(
        title=election_data.title,
        description=election_data.description,
        start_at=election_data.start_at,
        end_at=election_data.end_at,
        requested_by=current_principal,
    )
    return election_response(election, catalog.status_of(election))


@router.get("/{election_id}", response_model=ElectionDetailResponse)
async def get_election(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Optional[Principal] = Depends(get_current_principal)
) -> ElectionDetailResponse:
    """
    Get an election with its candidates and current tally.
    """
    catalog = ElectionCatalog(db)
    election = await catalog.get_election(election_id, current_principal)
    counts = await TallyReader(db).counts(election_id)

    summary = election_response(election, catalog.status_of(election))
    return ElectionDetailResponse(
        **summary.model_dump(),
        candidates=[
            CandidateTallyResponse(
                **candidate_response(count.candidate).model_dump(),
                vote_count=count.vote_count,
            )
            for count in counts
        ],
        total_votes=sum(count.vote_count for count in counts),
    )


async def _set_published(
    election_id: UUID,
    published: bool,
    db: AsyncSession,
    current_principal: Principal,
) -> ElectionResponse:
    catalog = ElectionCatalog(db)
    election = await catalog.set_published(election_id, published, current_principal)
    return election_response(election, catalog.status_of(election))


@router.post("/{election_id}/publish", response_model=ElectionResponse)
async def publish_election(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> ElectionResponse:
    """Make an election visible to voters."""
    return await _set_published(election_id, True, db, current_principal)


@router.post("/{election_id}/unpublish", response_model=ElectionResponse)
async def unpublish_election(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> ElectionResponse:
    """Hide an election from voters."""
    return await _set_published(election_id, False, db, current_principal)


@router.patch("/{election_id}/published", response_model=ElectionResponse)
async def update_published(
    election_id: UUID,
    update: PublishUpdate,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> ElectionResponse:
    """Set the publication flag to an explicit value."""
    return await _set_published(election_id, update.published, db, current_principal)


@router.post("/{election_id}/candidates", response_model=CandidateResponse, status_code=status.HTTP_201_CREATED)
async def add_candidate(
    election_id: UUID,
    candidate_data: CandidateCreate,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> CandidateResponse:
    """
    Add a candidate to an election.
    Requires admin role.
    """
    catalog = ElectionCatalog(db)
    candidate = await catalog.add_candidate(
        election_id=election_id,
        name=candidate_data.name,
        party=candidate_data.party,
        photo_ref=candidate_data.photo_ref,
        requested_by=current_principal,
    )
    return candidate_response(candidate)
