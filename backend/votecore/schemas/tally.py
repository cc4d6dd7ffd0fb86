"""
Tally-related Pydantic schemas.
"""
from typing import Optional, List, Dict
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field


class CandidateResult(BaseModel):
    """Result for a single candidate."""

    candidate_id: UUID = Field(..., description="Candidate ID")
    name: str = Field(..., description="Candidate name")
    party: Optional[str] = Field(None, description="Party affiliation")
    photo_ref: Optional[str] = Field(None, description="Candidate photo reference")
    vote_count: int = Field(..., description="Number of votes received")
    percentage: float = Field(..., description="Percentage of total votes")


class LiveResultsResponse(BaseModel):
    """Current tally, meant to be polled."""

    election_id: UUID = Field(..., description="Election ID")
    title: str = Field(..., description="Election title")
    status: str = Field(..., description="upcoming, ongoing or past")
    total_votes: int = Field(..., description="Sum of all candidate counts")
    results: List[CandidateResult] = Field(..., description="Results by candidate")
    as_of: datetime = Field(..., description="When this snapshot was read")
    poll_interval_seconds: int = Field(..., description="Suggested delay before the next poll")


class TallyAuditResponse(BaseModel):
    """Counters compared with a recount from the vote rows."""

    election_id: UUID
    counters: Dict[str, int] = Field(..., description="Counts maintained at cast time")
    recount: Dict[str, int] = Field(..., description="Counts aggregated from vote rows")
    consistent: bool


class ErrorResponse(BaseModel):
    """Body of every core failure."""

    error: str = Field(..., description="Failure kind")
    detail: str = Field(..., description="Human-readable message")
