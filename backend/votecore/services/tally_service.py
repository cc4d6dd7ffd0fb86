"""
Tally reader: live results served from the per-candidate counters.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.clock import Clock, utcnow
from votecore.core.config import settings
from votecore.core.security import Principal
from votecore.models.election import Candidate, ElectionStatus
from votecore.models.vote import CandidateTally
from votecore.services.election_service import ElectionCatalog


@dataclass(frozen=True)
class CandidateCount:
    candidate: Candidate
    vote_count: int


@dataclass
class LiveResults:
    """One consistent snapshot of an election's tally."""

    election_id: uuid.UUID
    title: str
    status: ElectionStatus
    as_of: datetime
    counts: List[CandidateCount] = field(default_factory=list)
    poll_interval_seconds: int = settings.LIVE_RESULTS_POLL_SECONDS

    @property
    def total_votes(self) -> int:
        return sum(c.vote_count for c in self.counts)

    @property
    def tally(self) -> Dict[uuid.UUID, int]:
        return {c.candidate.id: c.vote_count for c in self.counts}

    def percentage(self, count: CandidateCount) -> float:
        total = self.total_votes
        return round(count.vote_count / total * 100, 2) if total else 0.0


class TallyReader:
    """Read-only view over the ledger's counters. Never reads raw votes."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.catalog = ElectionCatalog(db, clock)

    async def counts(self, election_id: uuid.UUID) -> List[CandidateCount]:
        """
        Every candidate of the election with its counter, zero included.

        A single statement, so all counts come from the same snapshot.
        """
        result = await self.db.execute(
            select(Candidate, func.coalesce(CandidateTally.vote_count, 0))
            .outerjoin(CandidateTally, CandidateTally.candidate_id == Candidate.id)
            .where(Candidate.election_id == election_id)
            .order_by(Candidate.created_at.asc())
        )
        return [CandidateCount(candidate=row[0], vote_count=row[1]) for row in result.all()]

    async def live_results(
        self,
        election_id: uuid.UUID,
        caller: Optional[Principal] = None,
    ) -> LiveResults:
        """Title, status and current tally of an election visible to the caller."""
        election = await self.catalog.get_election(election_id, caller)
        counts = await self.counts(election_id)

        return LiveResults(
            election_id=election.id,
            title=election.title,
            status=self.catalog.status_of(election),
            as_of=self.clock(),
            counts=counts,
        )
