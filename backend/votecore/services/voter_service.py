"""
Voter registry service: registration, admin review and eligibility.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.clock import Clock, utcnow
from votecore.core.config import settings
from votecore.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from votecore.core.security import Principal
from votecore.models.voter import NOT_REGISTERED, RegistrationStatus, VoterRegistration
from votecore.services.access import require_admin


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoterStatus:
    """A user's registration state; ``registration`` is None when not registered."""

    status: str
    registration: Optional[VoterRegistration] = None

    @property
    def approved(self) -> bool:
        return self.status == RegistrationStatus.APPROVED.value


class VoterRegistry:
    """Owns voter registrations and is the only writer of approval state."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        max_resubmissions: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.max_resubmissions = (
            settings.MAX_REGISTRATION_RESUBMISSIONS if max_resubmissions is None else max_resubmissions
        )

    async def submit_registration(
        self,
        user_id: str,
        epic_id: Optional[str],
        dob: Optional[date],
        address: Optional[str],
        photo_ref: Optional[str],
        biometric_ref: Optional[str],
    ) -> VoterRegistration:
        """
        Register the user as a voter, pending admin review.

        A user has at most one registration. A rejected registration can be
        resubmitted only while the resubmission budget allows it.
        """
        fields = {
            "epic_id": epic_id,
            "address": address,
            "photo_ref": photo_ref,
            "biometric_ref": biometric_ref,
        }
        missing = [field for field, value in fields.items() if not value or not value.strip()]
        if dob is None:
            missing.append("dob")
        if missing:
            raise ValidationError(f"Missing registration fields: {', '.join(missing)}")
        if dob > self.clock().date():
            raise ValidationError("Date of birth cannot be in the future")

        epic_id = epic_id.strip().upper()
        await self._ensure_epic_available(epic_id, user_id)

        existing = await self._get_by_user(user_id)
        if existing:
            registration = self._resubmit(existing)
        else:
            registration = VoterRegistration(user_id=user_id, status=RegistrationStatus.PENDING)
            self.db.add(registration)

        registration.epic_id = epic_id
        registration.dob = dob
        registration.address = address.strip()
        registration.photo_ref = photo_ref.strip()
        registration.biometric_ref = biometric_ref.strip()

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("A registration already exists for this user or EPIC id") from e

        await self.db.refresh(registration)
        logger.info("Voter registration %s submitted by user %s", registration.id, user_id)
        return registration

    def _resubmit(self, registration: VoterRegistration) -> VoterRegistration:
        if registration.status != RegistrationStatus.REJECTED:
            raise ConflictError("User already has a voter registration")
        if registration.resubmission_count >= self.max_resubmissions:
            raise ConflictError("Rejected registration cannot be resubmitted")

        registration.status = RegistrationStatus.PENDING
        registration.resubmission_count += 1
        registration.reviewed_at = None
        registration.reviewed_by = None
        return registration

    async def _ensure_epic_available(self, epic_id: str, user_id: str) -> None:
        result = await self.db.execute(
            select(VoterRegistration.id).where(
                VoterRegistration.epic_id == epic_id,
                VoterRegistration.user_id != user_id,
            )
        )
        if result.first():
            raise ConflictError("EPIC id is already registered")

    async def approve(self, voter_id: uuid.UUID, requested_by: Principal) -> VoterRegistration:
        """Move a pending registration to approved."""
        return await self._review(voter_id, RegistrationStatus.APPROVED, requested_by)

    async def reject(self, voter_id: uuid.UUID, requested_by: Principal) -> VoterRegistration:
        """Move a pending registration to rejected."""
        return await self._review(voter_id, RegistrationStatus.REJECTED, requested_by)

    async def _review(
        self,
        voter_id: uuid.UUID,
        target: RegistrationStatus,
        requested_by: Principal,
    ) -> VoterRegistration:
        require_admin(requested_by, "review voter registrations")

        # Conditional on the current state so two reviewers cannot both win
        result = await self.db.execute(
            update(VoterRegistration)
            .where(
                VoterRegistration.id == voter_id,
                VoterRegistration.status == RegistrationStatus.PENDING,
            )
            .values(
                status=target,
                reviewed_at=self.clock(),
                reviewed_by=requested_by.user_id,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        registration = await self.get_registration(voter_id)
        if result.rowcount == 0:
            if registration is None:
                raise NotFoundError("Voter registration not found")
            raise InvalidStateError(
                f"Registration is {registration.status.value}, only pending registrations can be reviewed"
            )

        logger.info("Voter registration %s %s by %s", voter_id, target.value, requested_by.user_id)
        return registration

    async def get_registration(self, voter_id: uuid.UUID) -> Optional[VoterRegistration]:
        result = await self.db.execute(
            select(VoterRegistration)
            .where(VoterRegistration.id == voter_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def status_for(self, user_id: str) -> VoterStatus:
        """The user's registration, or ``not_registered``."""
        registration = await self._get_by_user(user_id)
        if registration is None:
            return VoterStatus(status=NOT_REGISTERED)
        return VoterStatus(status=registration.status.value, registration=registration)

    async def is_eligible(self, voter_id: uuid.UUID, user_id: str) -> bool:
        """True only for an approved registration owned by ``user_id``."""
        registration = await self.get_registration(voter_id)
        return (
            registration is not None
            and registration.user_id == user_id
            and registration.is_approved
        )

    async def list_pending(self, requested_by: Principal) -> List[VoterRegistration]:
        require_admin(requested_by, "list pending voters")
        return await self._list_by_status(RegistrationStatus.PENDING)

    async def list_approved(self, requested_by: Principal) -> List[VoterRegistration]:
        require_admin(requested_by, "list approved voters")
        return await self._list_by_status(RegistrationStatus.APPROVED)

    async def _list_by_status(self, status: RegistrationStatus) -> List[VoterRegistration]:
        result = await self.db.execute(
            select(VoterRegistration)
            .where(VoterRegistration.status == status)
            .order_by(VoterRegistration.created_at.asc())
        )
        return list(result.scalars().all())

    async def _get_by_user(self, user_id: str) -> Optional[VoterRegistration]:
        result = await self.db.execute(
            select(VoterRegistration)
            .where(VoterRegistration.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
