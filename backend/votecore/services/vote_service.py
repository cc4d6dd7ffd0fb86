"""
Voting ledger: the only writer of votes and tally counters.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from votecore.core.clock import Clock, utcnow
from votecore.core.config import settings
from votecore.core.exceptions import (
    DuplicateVoteError,
    ElectionNotVotableError,
    InvalidCandidateError,
    NotEligibleError,
    StorageUnavailableError,
)
from votecore.core.locks import KeyedLock
from votecore.core.security import Principal
from votecore.models.election import Candidate, Election
from votecore.models.vote import CandidateTally, Vote
from votecore.models.voter import VoterRegistration
from votecore.services.election_service import ElectionCatalog
from votecore.services.tally_service import TallyReader
from votecore.services.voter_service import VoterRegistry


logger = logging.getLogger(__name__)

# Serializes vote writes per election within this process. The unique
# constraint on (election_id, voter_id) stays the authority across processes.
election_write_locks = KeyedLock()


@dataclass(frozen=True)
class RecentVote:
    vote_id: uuid.UUID
    candidate_id: uuid.UUID
    candidate_name: str
    cast_at: datetime


class VotingLedger:
    """Accepts votes, enforces eligibility and uniqueness, keeps the tally."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.max_attempts = settings.CAST_VOTE_MAX_ATTEMPTS if max_attempts is None else max_attempts
        if self.max_attempts not in (1, 2):
            raise ValueError(f"max_attempts must be 1 or 2, got {self.max_attempts}")
        self.catalog = ElectionCatalog(db, clock)
        self.registry = VoterRegistry(db, clock)
        self.tally_reader = TallyReader(db, clock)

    async def cast_vote(
        self,
        election_id: uuid.UUID,
        voter_id: uuid.UUID,
        candidate_id: uuid.UUID,
        caller_user_id: str,
    ) -> Vote:
        """
        Record one vote.

        Preconditions are checked in order: election votable, candidate in
        the election, voter approved and owned by the caller, no earlier vote.
        A transient storage fault is retried once with every precondition
        evaluated again; nothing else is retried.

        If the fault hid a commit that did land, the retry reports
        ``DuplicateVoteError``: the voter's first attempt was recorded.
        """
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt_cast(election_id, voter_id, candidate_id, caller_user_id)
            except DuplicateVoteError:
                if attempt > 1:
                    logger.info(
                        "Retry for voter %s in election %s found an existing vote; "
                        "the earlier attempt was recorded",
                        voter_id, election_id,
                    )
                raise
            except OperationalError as e:
                last_error = e
                await self.db.rollback()
                logger.warning(
                    "Storage fault casting vote for voter %s in election %s (attempt %d/%d): %s",
                    voter_id, election_id, attempt, self.max_attempts, e,
                )

        raise StorageUnavailableError("Vote could not be recorded, please try again later") from last_error

    async def _attempt_cast(
        self,
        election_id: uuid.UUID,
        voter_id: uuid.UUID,
        candidate_id: uuid.UUID,
        caller_user_id: str,
    ) -> Vote:
        election = await self._load_election(election_id)
        if election is None or not election.is_votable(self.clock()):
            raise ElectionNotVotableError("Election is not open for voting")

        candidate = await self._load_candidate(candidate_id)
        if candidate is None or candidate.election_id != election.id:
            raise InvalidCandidateError("Candidate does not stand in this election")

        if not await self.registry.is_eligible(voter_id, caller_user_id):
            raise NotEligibleError("Voter is not approved or does not belong to the caller")

        async with election_write_locks(election.id):
            vote = await self._commit_vote(election.id, voter_id, candidate.id)

        logger.info("Vote %s recorded for voter %s in election %s", vote.id, voter_id, election_id)
        return vote

    async def _commit_vote(
        self,
        election_id: uuid.UUID,
        voter_id: uuid.UUID,
        candidate_id: uuid.UUID,
    ) -> Vote:
        """Insert the vote and bump its counter in one transaction."""
        vote = Vote(
            election_id=election_id,
            voter_id=voter_id,
            candidate_id=candidate_id,
            cast_at=self.clock(),
        )
        self.db.add(vote)

        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info("Duplicate vote rejected for voter %s in election %s", voter_id, election_id)
            raise DuplicateVoteError("Voter has already voted in this election") from e

        result = await self.db.execute(
            update(CandidateTally)
            .where(CandidateTally.candidate_id == candidate_id)
            .values(vote_count=CandidateTally.vote_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Counters are opened with the candidate; a missing one is corruption
            await self.db.rollback()
            logger.error("No tally counter for candidate %s in election %s", candidate_id, election_id)
            raise RuntimeError(f"Tally counter missing for candidate {candidate_id}")

        await self.db.commit()
        return vote

    async def _load_election(self, election_id: uuid.UUID) -> Optional[Election]:
        result = await self.db.execute(
            select(Election)
            .where(Election.id == election_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_candidate(self, candidate_id: uuid.UUID) -> Optional[Candidate]:
        result = await self.db.execute(
            select(Candidate).where(Candidate.id == candidate_id)
        )
        return result.scalar_one_or_none()

    async def get_tally(self, election_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        """Candidate id -> count from the counters, zero for candidates without votes."""
        counts = await self.tally_reader.counts(election_id)
        return {c.candidate.id: c.vote_count for c in counts}

    async def recount(self, election_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        """Candidate id -> count aggregated from the committed vote rows."""
        result = await self.db.execute(
            select(Candidate.id, func.count(Vote.id))
            .outerjoin(Vote, Vote.candidate_id == Candidate.id)
            .where(Candidate.election_id == election_id)
            .group_by(Candidate.id)
        )
        return {candidate_id: count for candidate_id, count in result.all()}

    async def find_vote(self, election_id: uuid.UUID, user_id: str) -> Optional[Vote]:
        """The caller's vote in an election, if any. Server-side truth for "has voted"."""
        result = await self.db.execute(
            select(Vote)
            .join(VoterRegistration, Vote.voter_id == VoterRegistration.id)
            .where(
                Vote.election_id == election_id,
                VoterRegistration.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def latest_votes(
        self,
        election_id: uuid.UUID,
        caller: Optional[Principal] = None,
        limit: Optional[int] = None,
    ) -> List[RecentVote]:
        """Most recent votes in an election, newest first, without voter identity."""
        await self.catalog.get_election(election_id, caller)

        result = await self.db.execute(
            select(Vote.id, Vote.candidate_id, Candidate.name, Vote.cast_at)
            .join(Candidate, Vote.candidate_id == Candidate.id)
            .where(Vote.election_id == election_id)
            .order_by(Vote.cast_at.desc())
            .limit(limit or settings.LATEST_VOTES_LIMIT)
        )
        return [
            RecentVote(vote_id=row[0], candidate_id=row[1], candidate_name=row[2], cast_at=row[3])
            for row in result.all()
        ]
