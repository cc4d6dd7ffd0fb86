"""
Vote-related database models.
"""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, CheckConstraint

from votecore.core.clock import utcnow
from votecore.core.database import Base, GUID


class Vote(Base):
    """
    A committed vote. Never mutated or deleted.
    At most one row per (election, voter), enforced by the unique constraint.
    """

    __tablename__ = "votes"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    election_id = Column(
        GUID(),
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False
    )
    voter_id = Column(
        GUID(),
        ForeignKey("voter_registrations.id"),
        nullable=False
    )
    candidate_id = Column(
        GUID(),
        ForeignKey("candidates.id"),
        nullable=False,
        index=True
    )

    cast_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("election_id", "voter_id", name="uq_vote_election_voter"),
    )

    def __repr__(self) -> str:
        return f"<Vote(id={self.id}, election_id={self.election_id})>"


class CandidateTally(Base):
    """
    Running vote count for one candidate.
    Incremented in the same transaction that inserts the Vote row.
    """

    __tablename__ = "candidate_tallies"

    candidate_id = Column(
        GUID(),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        primary_key=True
    )
    election_id = Column(
        GUID(),
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    vote_count = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("vote_count >= 0", name="ck_tally_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<CandidateTally(candidate_id={self.candidate_id}, votes={self.vote_count})>"

    @classmethod
    def opened_for(cls, candidate) -> "CandidateTally":
        """A zero counter for a newly created candidate."""
        return cls(
            candidate_id=candidate.id,
            election_id=candidate.election_id,
            vote_count=0,
        )
