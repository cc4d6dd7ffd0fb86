"""
Voter registry API endpoints.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.database import get_db
from votecore.core.security import Principal
from votecore.models.voter import VoterRegistration
from votecore.services.voter_service import VoterRegistry
from votecore.schemas.voter import (
    VoterRegistrationCreate,
    VoterRegistrationResponse,
    VoterStatusResponse,
)
from votecore.api.v1.deps import error_responses, require_authentication


router = APIRouter(responses=error_responses(403, 404, 409))

# Admin console paths kept for existing clients
admin_router = APIRouter(responses=error_responses(403))


def registration_response(registration: VoterRegistration) -> VoterRegistrationResponse:
    return VoterRegistrationResponse(
        id=registration.id,
        user_id=registration.user_id,
        epic_id=registration.epic_id,
        dob=registration.dob,
        address=registration.address,
        photo_ref=registration.photo_ref,
        biometric_ref=registration.biometric_ref,
        status=registration.status.value,
        resubmission_count=registration.resubmission_count,
        created_at=registration.created_at,
        reviewed_at=registration.reviewed_at,
    )


@router.post("/register", response_model=VoterRegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_voter(
    registration_data: VoterRegistrationCreate,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> VoterRegistrationResponse:
    """
    Submit the caller's voter registration for review.
    The photo and fingerprint are referenced, not uploaded here.
    """
    registry = VoterRegistry(db)
    registration = await registry.submit_registration(
        user_id=current_principal.user_id,
        epic_id=registration_data.epic_id,
        dob=registration_data.dob,
        address=registration_data.address,
        photo_ref=registration_data.photo_ref,
        biometric_ref=registration_data.biometric_ref,
    )
    return registration_response(registration)


@router.get("/my-status", response_model=VoterStatusResponse)
async def get_my_status(
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> VoterStatusResponse:
    """
    Get the caller's registration state: not_registered, pending,
    approved or rejected.
    """
    registry = VoterRegistry(db)
    voter_status = await registry.status_for(current_principal.user_id)

    registration = voter_status.registration
    return VoterStatusResponse(
        status=voter_status.status,
        approved=voter_status.approved,
        voter_id=registration.id if registration else None,
        registration=registration_response(registration) if registration else None,
    )


@router.get("/pending", response_model=List[VoterRegistrationResponse])
@admin_router.get("/pending-voters", response_model=List[VoterRegistrationResponse])
async def list_pending_voters(
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> List[VoterRegistrationResponse]:
    """
    List registrations awaiting review.
    Requires admin role.
    """
    registry = VoterRegistry(db)
    return [registration_response(r) for r in await registry.list_pending(current_principal)]


@router.get("/approved", response_model=List[VoterRegistrationResponse])
async def list_approved_voters(
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> List[VoterRegistrationResponse]:
    """
    List approved voters.
    Requires admin role.
    """
    registry = VoterRegistry(db)
    return [registration_response(r) for r in await registry.list_approved(current_principal)]


@router.post("/{voter_id}/approve", response_model=VoterRegistrationResponse)
async def approve_voter(
    voter_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> VoterRegistrationResponse:
    """
    Approve a pending registration.
    Already reviewed registrations fail with ``invalid_state``.
    """
    registry = VoterRegistry(db)
    return registration_response(await registry.approve(voter_id, current_principal))


@router.post("/{voter_id}/reject", response_model=VoterRegistrationResponse)
async def reject_voter(
    voter_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_principal: Principal = Depends(require_authentication)
) -> VoterRegistrationResponse:
    """
    Reject a pending registration.
    Already reviewed registrations fail with ``invalid_state``.
    """
    registry = VoterRegistry(db)
    return registration_response(await registry.reject(voter_id, current_principal))
