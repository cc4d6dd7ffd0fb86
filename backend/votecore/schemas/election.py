"""
Election-related Pydantic schemas.
"""
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field


class CandidateCreate(BaseModel):
    """Schema for adding a candidate. Emptiness is checked by the catalog."""

    name: str = Field(..., max_length=100, description="Candidate name")
    party: str = Field(..., max_length=100, description="Party affiliation")
    photo_ref: str = Field(..., max_length=500, description="Reference to the candidate photo in the media store")


class CandidateResponse(BaseModel):
    """Schema for candidate response."""

    id: UUID
    election_id: UUID
    name: str
    party: str
    photo_ref: str
    created_at: datetime

    class Config:
        from_attributes = True


class CandidateTallyResponse(CandidateResponse):
    """Candidate with its current vote count."""

    vote_count: int = Field(default=0, description="Votes received so far")


class ElectionCreate(BaseModel):
    """Schema for creating an election."""

    title: str = Field(..., max_length=200, description="Election title")
    description: Optional[str] = Field(None, description="Election description")
    start_at: Optional[datetime] = Field(None, description="Voting opens (inclusive)")
    end_at: Optional[datetime] = Field(None, description="Voting closes (inclusive)")


class PublishUpdate(BaseModel):
    """Schema for toggling publication."""

    published: bool = Field(..., description="Whether non-admins can see the election")


class ElectionResponse(BaseModel):
    """Schema for election response. ``status`` is computed at read time."""

    id: UUID
    title: str
    description: Optional[str]
    start_at: datetime
    end_at: datetime
    published: bool
    status: str = Field(..., description="upcoming, ongoing or past")
    total_candidates: int
    created_at: datetime

    class Config:
        from_attributes = True


class ElectionDetailResponse(ElectionResponse):
    """Election with its candidates and current tally."""

    candidates: List[CandidateTallyResponse]
    total_votes: int
