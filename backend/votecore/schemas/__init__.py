"""
Pydantic schemas for request/response validation.
"""
from votecore.schemas.election import (
    CandidateCreate,
    CandidateResponse,
    CandidateTallyResponse,
    ElectionCreate,
    ElectionDetailResponse,
    ElectionResponse,
    PublishUpdate,
)
from votecore.schemas.voter import (
    VoterRegistrationCreate,
    VoterRegistrationResponse,
    VoterStatusResponse,
)
from votecore.schemas.vote import (
    VoteCastRequest,
    VoteCastResponse,
    VoteStatusResponse,
    RecentVoteResponse,
)
from votecore.schemas.tally import (
    CandidateResult,
    LiveResultsResponse,
    TallyAuditResponse,
    ErrorResponse,
)

__all__ = [
    # Election
    "CandidateCreate",
    "CandidateResponse",
    "CandidateTallyResponse",
    "ElectionCreate",
    "ElectionDetailResponse",
    "ElectionResponse",
    "PublishUpdate",
    # Voter
    "VoterRegistrationCreate",
    "VoterRegistrationResponse",
    "VoterStatusResponse",
    # Vote
    "VoteCastRequest",
    "VoteCastResponse",
    "VoteStatusResponse",
    "RecentVoteResponse",
    # Tally
    "CandidateResult",
    "LiveResultsResponse",
    "TallyAuditResponse",
    "ErrorResponse",
]
