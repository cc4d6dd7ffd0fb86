"""
Voter registration database model.
"""
import enum
import uuid

from sqlalchemy import Column, Date, DateTime, Enum, Integer, String, Text

from votecore.core.clock import utcnow
from votecore.core.database import Base, GUID


class RegistrationStatus(str, enum.Enum):
    """Approval state. PENDING is the only non-terminal state."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


NOT_REGISTERED = "not_registered"


class VoterRegistration(Base):
    """
    A user's request to be allowed to vote.
    One registration per user; created pending and reviewed by an admin.
    """

    __tablename__ = "voter_registrations"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), unique=True, nullable=False, index=True)

    # Civic identity
    epic_id = Column(String(32), unique=True, nullable=False, index=True)
    dob = Column(Date, nullable=False)
    address = Column(Text, nullable=False)

    # References into the media store, never the media itself
    photo_ref = Column(String(500), nullable=False)
    biometric_ref = Column(String(500), nullable=False)

    status = Column(
        Enum(RegistrationStatus),
        default=RegistrationStatus.PENDING,
        nullable=False,
        index=True,
    )
    resubmission_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<VoterRegistration(id={self.id}, user_id='{self.user_id}', status={self.status})>"

    @property
    def is_approved(self) -> bool:
        return self.status == RegistrationStatus.APPROVED
