"""
Vote-related Pydantic schemas.
"""
from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field


class VoteCastRequest(BaseModel):
    """Request to cast a vote in the election named by the path."""

    voter_id: UUID = Field(..., description="The caller's approved voter registration id")
    candidate_id: UUID = Field(..., description="Candidate to vote for")


class VoteCastResponse(BaseModel):
    """Response after a vote is recorded."""

    success: bool = Field(default=True)
    vote_id: UUID = Field(..., description="Recorded vote id")
    election_id: UUID
    candidate_id: UUID
    cast_at: datetime


class VoteStatusResponse(BaseModel):
    """Whether the caller has voted, as recorded by the server."""

    has_voted: bool
    vote_id: Optional[UUID] = None
    cast_at: Optional[datetime] = None


class RecentVoteResponse(BaseModel):
    """A recent vote without voter identity."""

    vote_id: UUID
    candidate_id: UUID
    candidate_name: str
    cast_at: datetime
