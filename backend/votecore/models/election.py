"""
Election and Candidate database models.
"""
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from votecore.core.clock import utcnow
from votecore.core.database import Base, GUID


class ElectionStatus(str, enum.Enum):
    """Temporal status, derived from the election window and the current time."""
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    PAST = "past"


class Election(Base):
    """Election model representing a time-bounded voting event."""

    __tablename__ = "elections"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Voting window (naive UTC)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    published = Column(Boolean, default=False, nullable=False)

    # Audit trail
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by = Column(String(64), nullable=True)

    # Relationships
    candidates = relationship(
        "Candidate",
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="Candidate.created_at",
    )

    __table_args__ = (
        CheckConstraint("start_at < end_at", name="ck_election_window"),
    )

    def __repr__(self) -> str:
        return f"<Election(id={self.id}, title='{self.title}', published={self.published})>"

    def status_at(self, now: Optional[datetime] = None) -> ElectionStatus:
        """Status at ``now``; both window boundaries count as ongoing."""
        now = now or utcnow()
        if now < self.start_at:
            return ElectionStatus.UPCOMING
        if now > self.end_at:
            return ElectionStatus.PAST
        return ElectionStatus.ONGOING

    def is_votable(self, now: Optional[datetime] = None) -> bool:
        return bool(self.published) and self.status_at(now) == ElectionStatus.ONGOING


class Candidate(Base):
    """Candidate model. Append-only within its election."""

    __tablename__ = "candidates"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    election_id = Column(
        GUID(),
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(100), nullable=False)
    party = Column(String(100), nullable=False)
    photo_ref = Column(String(500), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    election = relationship("Election", back_populates="candidates")

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, name='{self.name}', party='{self.party}')>"
