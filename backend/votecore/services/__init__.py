"""
Business logic services.
"""
from votecore.services.election_service import ElectionCatalog
from votecore.services.voter_service import VoterRegistry, VoterStatus
from votecore.services.vote_service import VotingLedger
from votecore.services.tally_service import TallyReader, LiveResults

__all__ = [
    "ElectionCatalog",
    "VoterRegistry",
    "VoterStatus",
    "VotingLedger",
    "TallyReader",
    "LiveResults",
]
