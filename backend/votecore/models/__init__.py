"""
SQLAlchemy database models.
"""
from votecore.models.election import Election, Candidate, ElectionStatus
from votecore.models.voter import VoterRegistration, RegistrationStatus, NOT_REGISTERED
from votecore.models.vote import Vote, CandidateTally

__all__ = [
    "Election",
    "Candidate",
    "ElectionStatus",
    "VoterRegistration",
    "RegistrationStatus",
    "NOT_REGISTERED",
    "Vote",
    "CandidateTally",
]
