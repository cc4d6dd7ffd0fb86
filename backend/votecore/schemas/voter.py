"""
Voter registration Pydantic schemas.
"""
from typing import Optional
from datetime import date, datetime
from uuid import UUID
from pydantic import BaseModel, Field


class VoterRegistrationCreate(BaseModel):
    """Registration submitted by the calling user."""

    epic_id: str = Field(..., max_length=32, description="EPIC civic voter id")
    dob: date = Field(..., description="Date of birth")
    address: str = Field(..., description="Residential address")
    photo_ref: str = Field(..., max_length=500, description="Reference to the uploaded photo")
    biometric_ref: str = Field(..., max_length=500, description="Reference to the uploaded fingerprint")


class VoterRegistrationResponse(BaseModel):
    """Schema for a voter registration."""

    id: UUID
    user_id: str
    epic_id: str
    dob: date
    address: str
    photo_ref: str
    biometric_ref: str
    status: str
    resubmission_count: int
    created_at: datetime
    reviewed_at: Optional[datetime]

    class Config:
        from_attributes = True


class VoterStatusResponse(BaseModel):
    """The caller's registration state."""

    status: str = Field(..., description="not_registered, pending, approved or rejected")
    approved: bool
    voter_id: Optional[UUID] = Field(None, description="Registration id, used as voter id when casting")
    registration: Optional[VoterRegistrationResponse] = None
