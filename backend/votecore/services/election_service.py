"""
Election catalog service.
"""
import logging
import uuid
from datetime import datetime
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from votecore.core.clock import Clock, to_naive_utc, utcnow
from votecore.core.config import settings
from votecore.core.exceptions import NotFoundError, ValidationError
from votecore.core.security import Principal
from votecore.models.election import Candidate, Election, ElectionStatus
from votecore.models.vote import CandidateTally
from votecore.services.access import is_admin, require_admin


logger = logging.getLogger(__name__)


class ElectionCatalog:
    """Owns elections and their candidates."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def status_of(self, election: Election) -> ElectionStatus:
        """Status of an election right now; never cached."""
        return election.status_at(self.clock())

    async def create_election(
        self,
        title: Optional[str],
        description: Optional[str],
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        requested_by: Principal,
    ) -> Election:
        """Create an unpublished election."""
        require_admin(requested_by, "create elections")

        if not title or not title.strip():
            raise ValidationError("Title is required")
        if start_at is None or end_at is None:
            raise ValidationError("Start and end times are required")

        start_at, end_at = to_naive_utc(start_at), to_naive_utc(end_at)
        if start_at >= end_at:
            raise ValidationError("Election must start before it ends")

        election = Election(
            title=title.strip(),
            description=description,
            start_at=start_at,
            end_at=end_at,
            published=False,
            created_by=requested_by.user_id,
        )
        self.db.add(election)
        await self.db.commit()

        logger.info("Election %s created by %s", election.id, requested_by.user_id)
        return await self._load(election.id)

    async def set_published(
        self,
        election_id: uuid.UUID,
        published: bool,
        requested_by: Principal,
    ) -> Election:
        """Publish or unpublish an election. Setting the current value is a no-op."""
        require_admin(requested_by, "publish elections")

        election = await self._load(election_id)
        if not election:
            raise NotFoundError("Election not found")

        if election.published != published:
            election.published = published
            await self.db.commit()
            logger.info(
                "Election %s %s by %s",
                election_id,
                "published" if published else "unpublished",
                requested_by.user_id,
            )

        return election

    async def list_elections(
        self,
        caller: Optional[Principal],
    ) -> AsyncIterator[Tuple[Election, ElectionStatus]]:
        """
        Yield elections visible to the caller with their current status.

        Admins see every election; everybody else only published ones. Each
        call runs a fresh query, and status is computed as rows are consumed.
        """
        query = select(Election).options(selectinload(Election.candidates))
        if not is_admin(caller):
            query = query.where(Election.published.is_(True))
        query = query.order_by(Election.start_at.desc(), Election.created_at.desc())

        result = await self.db.execute(query)
        for election in result.scalars():
            yield election, self.status_of(election)

    async def get_election(
        self,
        election_id: uuid.UUID,
        caller: Optional[Principal] = None,
    ) -> Election:
        """Get an election with candidates, honouring publication visibility."""
        election = await self._load(election_id)
        if not election or (not election.published and not is_admin(caller)):
            raise NotFoundError("Election not found")
        return election

    async def add_candidate(
        self,
        election_id: uuid.UUID,
        name: Optional[str],
        party: Optional[str],
        photo_ref: Optional[str],
        requested_by: Principal,
    ) -> Candidate:
        """Add a candidate to an election and open its tally counter."""
        require_admin(requested_by, "add candidates")

        fields = {"name": name, "party": party, "photo_ref": photo_ref}
        missing = [field for field, value in fields.items() if not value or not value.strip()]
        if missing:
            raise ValidationError(f"Missing candidate fields: {', '.join(missing)}")

        election = await self._load(election_id)
        if not election:
            raise NotFoundError("Election not found")

        name = name.strip()
        if not settings.ALLOW_DUPLICATE_CANDIDATE_NAMES:
            existing = await self.db.execute(
                select(func.count(Candidate.id)).where(
                    Candidate.election_id == election_id,
                    func.lower(Candidate.name) == name.lower(),
                )
            )
            if existing.scalar():
                raise ValidationError(f"Candidate '{name}' already stands in this election")

        candidate = Candidate(
            election_id=election_id,
            name=name,
            party=party.strip(),
            photo_ref=photo_ref.strip(),
        )
        self.db.add(candidate)
        await self.db.flush()

        self.db.add(CandidateTally.opened_for(candidate))
        await self.db.commit()
        await self.db.refresh(candidate)

        logger.info("Candidate %s added to election %s", candidate.id, election_id)
        return candidate

    async def list_candidates(self, caller: Optional[Principal]) -> List[Candidate]:
        """Candidates of every election visible to the caller."""
        query = select(Candidate).join(Election, Candidate.election_id == Election.id)
        if not is_admin(caller):
            query = query.where(Election.published.is_(True))
        query = query.order_by(Candidate.election_id, Candidate.created_at)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _load(self, election_id: uuid.UUID) -> Optional[Election]:
        result = await self.db.execute(
            select(Election)
            .options(selectinload(Election.candidates))
            .where(Election.id == election_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
