"""
Tests for vote casting.
"""
import uuid
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from votecore.core.exceptions import (
    DuplicateVoteError,
    ElectionNotVotableError,
    InvalidCandidateError,
    NotEligibleError,
    NotFoundError,
    StorageUnavailableError,
)
from votecore.models.vote import Vote
from votecore.services.vote_service import VotingLedger

from conftest import ADMIN, OTHER_VOTER, VOTER, create_election, register_voter


def storage_fault() -> OperationalError:
    return OperationalError("INSERT INTO votes", {}, Exception("database is locked"))


async def count_votes(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(Vote.id)))).scalar()


class TestVotingLedger:
    """Test cases for the ledger service."""

    @pytest.mark.asyncio
    async def test_voting_window_scenario(self, test_db, session_factory, frozen_clock):
        """One election from T to T+1h polled through its whole life."""
        start = frozen_clock.now
        election = await create_election(
            test_db, start_at=start, end_at=start + timedelta(hours=1)
        )
        a, b = (c.id for c in election.candidates)
        voter_1 = await register_voter(test_db, VOTER.user_id)
        voter_2 = await register_voter(test_db, OTHER_VOTER.user_id)

        frozen_clock.advance(minutes=10)
        async with session_factory() as session:
            ledger = VotingLedger(session, clock=frozen_clock)
            vote = await ledger.cast_vote(election.id, voter_1.id, a, VOTER.user_id)
            assert vote.cast_at == start + timedelta(minutes=10)
            assert await ledger.get_tally(election.id) == {a: 1, b: 0}

        frozen_clock.advance(minutes=1)
        async with session_factory() as session:
            ledger = VotingLedger(session, clock=frozen_clock)
            with pytest.raises(DuplicateVoteError):
                await ledger.cast_vote(election.id, voter_1.id, b, VOTER.user_id)

        frozen_clock.advance(minutes=1)
        async with session_factory() as session:
            ledger = VotingLedger(session, clock=frozen_clock)
            assert await ledger.get_tally(election.id) == {a: 1, b: 0}
            await ledger.cast_vote(election.id, voter_2.id, b, OTHER_VOTER.user_id)
            assert await ledger.get_tally(election.id) == {a: 1, b: 1}

        frozen_clock.advance(minutes=49)
        async with session_factory() as session:
            voter_3 = await register_voter(session, "user-3")
        async with session_factory() as session:
            ledger = VotingLedger(session, clock=frozen_clock)
            with pytest.raises(ElectionNotVotableError):
                await ledger.cast_vote(election.id, voter_3.id, a, "user-3")
            assert await ledger.get_tally(election.id) == {a: 1, b: 1}

    @pytest.mark.asyncio
    async def test_cannot_vote_before_start(self, test_db, session_factory, frozen_clock):
        election = await create_election(
            test_db,
            start_at=frozen_clock.now + timedelta(minutes=5),
            end_at=frozen_clock.now + timedelta(hours=1),
        )
        voter = await register_voter(test_db, VOTER.user_id)

        async with session_factory() as session:
            ledger = VotingLedger(session, clock=frozen_clock)
            with pytest.raises(ElectionNotVotableError):
                await ledger.cast_vote(
                    election.id, voter.id, election.candidates[0].id, VOTER.user_id
                )

    @pytest.mark.asyncio
    async def test_unpublished_election_not_votable(self, test_db, session_factory):
        election = await create_election(test_db, published=False)
        voter = await register_voter(test_db, VOTER.user_id)

        async with session_factory() as session:
            with pytest.raises(ElectionNotVotableError):
                await VotingLedger(session).cast_vote(
                    election.id, voter.id, election.candidates[0].id, VOTER.user_id
                )

    @pytest.mark.asyncio
    async def test_unknown_election_not_votable(self, session_factory, approved_voter):
        async with session_factory() as session:
            with pytest.raises(ElectionNotVotableError):
                await VotingLedger(session).cast_vote(
                    uuid.uuid4(), approved_voter.id, uuid.uuid4(), VOTER.user_id
                )

    @pytest.mark.asyncio
    async def test_candidate_from_other_election(
        self, test_db, session_factory, test_election, approved_voter
    ):
        other = await create_election(test_db, title="Other", candidates=("Elsewhere",))

        async with session_factory() as session:
            with pytest.raises(InvalidCandidateError):
                await VotingLedger(session).cast_vote(
                    test_election.id, approved_voter.id, other.candidates[0].id, VOTER.user_id
                )
        assert await count_votes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_pending_voter_not_eligible(
        self, session_factory, test_election, candidates, pending_voter
    ):
        async with session_factory() as session:
            with pytest.raises(NotEligibleError):
                await VotingLedger(session).cast_vote(
                    test_election.id, pending_voter.id, candidates("Candidate A").id,
                    OTHER_VOTER.user_id,
                )

    @pytest.mark.asyncio
    async def test_rejected_voter_not_eligible(
        self, test_db, session_factory, test_election, candidates, pending_voter
    ):
        from votecore.services.voter_service import VoterRegistry

        await VoterRegistry(test_db).reject(pending_voter.id, ADMIN)

        async with session_factory() as session:
            with pytest.raises(NotEligibleError):
                await VotingLedger(session).cast_vote(
                    test_election.id, pending_voter.id, candidates("Candidate A").id,
                    OTHER_VOTER.user_id,
                )

    @pytest.mark.asyncio
    async def test_cannot_vote_with_another_users_registration(
        self, session_factory, test_election, candidates, approved_voter
    ):
        async with session_factory() as session:
            with pytest.raises(NotEligibleError):
                await VotingLedger(session).cast_vote(
                    test_election.id, approved_voter.id, candidates("Candidate A").id,
                    OTHER_VOTER.user_id,
                )
        assert await count_votes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_transient_fault_is_retried(
        self, session_factory, test_election, candidates, approved_voter
    ):
        async with session_factory() as session:
            ledger = VotingLedger(session)
            commit_vote = ledger._commit_vote
            calls = []

            async def flaky_commit(*args, **kwargs):
                calls.append(args)
                if len(calls) == 1:
                    raise storage_fault()
                return await commit_vote(*args, **kwargs)

            with patch.object(ledger, "_commit_vote", side_effect=flaky_commit):
                vote = await ledger.cast_vote(
                    test_election.id, approved_voter.id, candidates("Candidate A").id,
                    VOTER.user_id,
                )

        assert len(calls) == 2
        assert vote.voter_id == approved_voter.id
        assert await count_votes(session_factory) == 1

    @pytest.mark.asyncio
    async def test_persistent_fault_reports_storage_unavailable(
        self, session_factory, test_election, candidates, approved_voter
    ):
        async with session_factory() as session:
            ledger = VotingLedger(session)
            failing = AsyncMock(side_effect=storage_fault())

            with patch.object(ledger, "_commit_vote", failing):
                with pytest.raises(StorageUnavailableError):
                    await ledger.cast_vote(
                        test_election.id, approved_voter.id, candidates("Candidate A").id,
                        VOTER.user_id,
                    )

        assert failing.await_count == 2
        assert await count_votes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_single_attempt_is_not_retried(
        self, session_factory, test_election, candidates, approved_voter
    ):
        async with session_factory() as session:
            ledger = VotingLedger(session, max_attempts=1)
            failing = AsyncMock(side_effect=storage_fault())

            with patch.object(ledger, "_commit_vote", failing):
                with pytest.raises(StorageUnavailableError):
                    await ledger.cast_vote(
                        test_election.id, approved_voter.id, candidates("Candidate A").id,
                        VOTER.user_id,
                    )

        assert failing.await_count == 1

    @pytest.mark.parametrize("max_attempts", [0, -1, 3])
    def test_attempts_limited_to_one_retry(self, max_attempts):
        with pytest.raises(ValueError):
            VotingLedger(AsyncMock(), max_attempts=max_attempts)

    @pytest.mark.parametrize("value", [0, 3])
    def test_settings_reject_attempts_out_of_range(self, value):
        import pydantic
        from votecore.core.config import Settings

        with pytest.raises(pydantic.ValidationError):
            Settings(CAST_VOTE_MAX_ATTEMPTS=value)

    @pytest.mark.asyncio
    async def test_fault_after_commit_reports_duplicate(
        self, session_factory, test_election, candidates, approved_voter, caplog
    ):
        """A commit that landed before the fault is seen as the voter's vote."""
        async with session_factory() as session:
            ledger = VotingLedger(session)
            commit_vote = ledger._commit_vote
            calls = []

            async def commit_then_fail(*args, **kwargs):
                calls.append(args)
                await commit_vote(*args, **kwargs)
                if len(calls) == 1:
                    raise storage_fault()

            with patch.object(ledger, "_commit_vote", side_effect=commit_then_fail):
                with caplog.at_level("INFO", logger="votecore.services.vote_service"):
                    with pytest.raises(DuplicateVoteError):
                        await ledger.cast_vote(
                            test_election.id, approved_voter.id, candidates("Candidate A").id,
                            VOTER.user_id,
                        )

        assert len(calls) == 2
        assert "earlier attempt was recorded" in caplog.text
        assert await count_votes(session_factory) == 1

        async with session_factory() as session:
            tally = await VotingLedger(session).get_tally(test_election.id)
        assert tally[candidates("Candidate A").id] == 1

    @pytest.mark.asyncio
    async def test_missing_counter_aborts_vote(
        self, session_factory, test_election, candidates, approved_voter
    ):
        from sqlalchemy import delete
        from votecore.models.vote import CandidateTally

        target = candidates("Candidate A")
        async with session_factory() as session:
            await session.execute(
                delete(CandidateTally).where(CandidateTally.candidate_id == target.id)
            )
            await session.commit()

        async with session_factory() as session:
            with pytest.raises(RuntimeError):
                await VotingLedger(session).cast_vote(
                    test_election.id, approved_voter.id, target.id, VOTER.user_id
                )

        assert await count_votes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_duplicate_is_not_retried(
        self, session_factory, test_election, candidates, approved_voter
    ):
        async with session_factory() as session:
            await VotingLedger(session).cast_vote(
                test_election.id, approved_voter.id, candidates("Candidate A").id, VOTER.user_id
            )

        async with session_factory() as session:
            ledger = VotingLedger(session)
            with patch.object(ledger, "_commit_vote", wraps=ledger._commit_vote) as commit_vote:
                with pytest.raises(DuplicateVoteError):
                    await ledger.cast_vote(
                        test_election.id, approved_voter.id, candidates("Candidate A").id,
                        VOTER.user_id,
                    )
            assert commit_vote.await_count == 1

    @pytest.mark.asyncio
    async def test_find_vote(self, session_factory, test_election, candidates, approved_voter):
        async with session_factory() as session:
            ledger = VotingLedger(session)
            assert await ledger.find_vote(test_election.id, VOTER.user_id) is None
            vote = await ledger.cast_vote(
                test_election.id, approved_voter.id, candidates("Candidate B").id, VOTER.user_id
            )

        async with session_factory() as session:
            ledger = VotingLedger(session)
            found = await ledger.find_vote(test_election.id, VOTER.user_id)
            assert found.id == vote.id
            assert await ledger.find_vote(test_election.id, OTHER_VOTER.user_id) is None

    @pytest.mark.asyncio
    async def test_latest_votes(self, test_db, session_factory, frozen_clock):
        start = frozen_clock.now
        election = await create_election(
            test_db, start_at=start, end_at=start + timedelta(hours=1)
        )
        a, b = election.candidates
        voters = [await register_voter(test_db, f"user-{n}") for n in range(3)]

        for n, (voter, candidate) in enumerate(zip(voters, (a, b, a))):
            frozen_clock.advance(minutes=1)
            async with session_factory() as session:
                await VotingLedger(session, clock=frozen_clock).cast_vote(
                    election.id, voter.id, candidate.id, f"user-{n}"
                )

        async with session_factory() as session:
            recent = await VotingLedger(session).latest_votes(election.id, limit=2)

        assert [v.candidate_name for v in recent] == ["Candidate A", "Candidate B"]
        assert recent[0].cast_at > recent[1].cast_at

    @pytest.mark.asyncio
    async def test_latest_votes_hidden_election(self, test_db, session_factory):
        election = await create_election(test_db, published=False)

        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await VotingLedger(session).latest_votes(election.id, VOTER)
            assert await VotingLedger(session).latest_votes(election.id, ADMIN) == []


class TestVoteEndpoints:
    """Test cases for voting API endpoints."""

    @pytest.mark.asyncio
    async def test_cast_vote(
        self,
        client: AsyncClient,
        test_election,
        candidates,
        approved_voter,
        auth_headers: dict,
    ):
        """Test casting a vote and reading it back."""
        candidate_id = str(candidates("Candidate A").id)

        response = await client.post(
            f"/api/v1/elections/{test_election.id}/vote",
            json={"voter_id": str(approved_voter.id), "candidate_id": candidate_id},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["candidate_id"] == candidate_id

        response = await client.get(
            f"/api/v1/elections/{test_election.id}/my-vote", headers=auth_headers
        )
        assert response.json()["has_voted"] is True
        assert response.json()["vote_id"] == data["vote_id"]

    @pytest.mark.asyncio
    async def test_duplicate_vote(
        self,
        client: AsyncClient,
        test_election,
        candidates,
        approved_voter,
        auth_headers: dict,
    ):
        """A second vote is rejected and the tally is unchanged."""
        url = f"/api/v1/elections/{test_election.id}/vote"
        await client.post(
            url,
            json={"voter_id": str(approved_voter.id), "candidate_id": str(candidates("Candidate A").id)},
            headers=auth_headers,
        )

        response = await client.post(
            url,
            json={"voter_id": str(approved_voter.id), "candidate_id": str(candidates("Candidate B").id)},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_vote"

        results = (await client.get(f"/api/v1/elections/{test_election.id}/live-results")).json()
        assert results["total_votes"] == 1

    @pytest.mark.asyncio
    async def test_cast_vote_error_kinds(
        self,
        client: AsyncClient,
        test_db,
        test_election,
        candidates,
        approved_voter,
        auth_headers: dict,
        other_auth_headers: dict,
    ):
        url = f"/api/v1/elections/{test_election.id}/vote"

        response = await client.post(
            url,
            json={"voter_id": str(approved_voter.id), "candidate_id": str(uuid.uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_candidate"

        response = await client.post(
            url,
            json={"voter_id": str(approved_voter.id), "candidate_id": str(candidates("Candidate A").id)},
            headers=other_auth_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"] == "not_eligible"

        closed = await create_election(
            test_db,
            title="Closed",
            start_at=test_election.start_at - timedelta(days=2),
            end_at=test_election.start_at - timedelta(days=1),
        )
        response = await client.post(
            f"/api/v1/elections/{closed.id}/vote",
            json={"voter_id": str(approved_voter.id), "candidate_id": str(closed.candidates[0].id)},
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "election_not_votable"

    @pytest.mark.asyncio
    async def test_cast_vote_unauthenticated(
        self,
        client: AsyncClient,
        test_election,
        candidates,
        approved_voter,
    ):
        response = await client.post(
            f"/api/v1/elections/{test_election.id}/vote",
            json={"voter_id": str(approved_voter.id), "candidate_id": str(candidates("Candidate A").id)},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_check_vote_status(
        self,
        client: AsyncClient,
        test_election,
        auth_headers: dict,
    ):
        """Test checking vote status before voting."""
        response = await client.get(
            f"/api/v1/elections/{test_election.id}/my-vote",
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["has_voted"] is False

    @pytest.mark.asyncio
    async def test_latest_votes_endpoint(
        self,
        client: AsyncClient,
        test_election,
        candidates,
        approved_voter,
        auth_headers: dict,
    ):
        await client.post(
            f"/api/v1/elections/{test_election.id}/vote",
            json={"voter_id": str(approved_voter.id), "candidate_id": str(candidates("Candidate B").id)},
            headers=auth_headers,
        )

        response = await client.get(f"/api/v1/elections/{test_election.id}/votes/latest")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["candidate_name"] == "Candidate B"
        assert "voter_id" not in data[0]

    @pytest.mark.asyncio
    async def test_error_body_documented(self, client: AsyncClient):
        response = await client.get("/api/v1/openapi.json")

        assert response.status_code == 200
        spec = response.json()
        cast = spec["paths"]["/api/v1/elections/{election_id}/vote"]["post"]["responses"]
        for code in ("403", "404", "409", "503"):
            assert cast[code]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
        assert set(spec["components"]["schemas"]["ErrorResponse"]["properties"]) == {"error", "detail"}
