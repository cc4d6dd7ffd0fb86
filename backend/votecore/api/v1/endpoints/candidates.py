"""
Candidate listing API endpoint.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.database import get_db
from votecore.core.security import Principal
from votecore.services.election_service import ElectionCatalog
from votecore.schemas.election import CandidateResponse
from votecore.api.v1.deps import require_authentication
from votecore.api.v1.endpoints.elections import candidate_response


router = APIRouter()


@router.get("", response_model=List[CandidateResponse])
async def list_candidates(
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> List[CandidateResponse]:
    """
    Get the candidates of every election visible to the caller.
    """
    catalog = ElectionCatalog(db)
    return [candidate_response(c) for c in await catalog.list_candidates(current_principal)]
