"""
Pytest configuration and fixtures for backend tests.
"""
import pytest
import pytest_asyncio
from datetime import date, datetime, timedelta
from typing import AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from httpx import ASGITransport, AsyncClient

import votecore.models  # noqa: F401
from votecore.main import app
from votecore.core.clock import utcnow
from votecore.core.database import Base, get_db
from votecore.core.security import Principal, UserRole, create_access_token
from votecore.models.election import Candidate, Election
from votecore.models.voter import VoterRegistration
from votecore.services.election_service import ElectionCatalog
from votecore.services.voter_service import VoterRegistry


class FrozenClock:
    """Controllable clock for status-dependent tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


ADMIN = Principal(user_id="admin-1", role=UserRole.ADMIN)
VOTER = Principal(user_id="user-1", role=UserRole.VOTER)
OTHER_VOTER = Principal(user_id="user-2", role=UserRole.VOTER)


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory bound to a fresh SQLite database file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session for fixture setup."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client; every request gets its own session."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def _headers(principal: Principal) -> dict:
    token = create_access_token({
        "sub": principal.user_id,
        "role": principal.role.value,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_auth_headers() -> dict:
    """Authentication headers for an admin."""
    return _headers(ADMIN)


@pytest.fixture
def auth_headers() -> dict:
    """Authentication headers for a regular user."""
    return _headers(VOTER)


@pytest.fixture
def other_auth_headers() -> dict:
    """Authentication headers for a second regular user."""
    return _headers(OTHER_VOTER)


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2030, 1, 1, 12, 0, 0))


async def create_election(
    db: AsyncSession,
    *,
    title: str = "General Election 2030",
    start_at: datetime = None,
    end_at: datetime = None,
    published: bool = True,
    candidates=("Candidate A", "Candidate B"),
) -> Election:
    """Create an election through the catalog, optionally published, with candidates."""
    catalog = ElectionCatalog(db)
    now = utcnow()
    election = await catalog.create_election(
        title=title,
        description="Test election",
        start_at=start_at or now - timedelta(hours=1),
        end_at=end_at or now + timedelta(hours=1),
        requested_by=ADMIN,
    )
    for idx, name in enumerate(candidates):
        await catalog.add_candidate(
            election.id, name, f"Party {idx + 1}", f"photos/{idx + 1}.png", requested_by=ADMIN
        )
    if published:
        await catalog.set_published(election.id, True, requested_by=ADMIN)
    return await catalog.get_election(election.id, ADMIN)


async def register_voter(
    db: AsyncSession,
    user_id: str,
    *,
    epic_id: str = None,
    approve: bool = True,
) -> VoterRegistration:
    """Register a voter and optionally approve them."""
    registry = VoterRegistry(db)
    registration = await registry.submit_registration(
        user_id=user_id,
        epic_id=epic_id or f"EPIC{user_id.upper().replace('-', '')}",
        dob=date(1990, 5, 17),
        address="12 Main Street",
        photo_ref=f"photos/{user_id}.jpg",
        biometric_ref=f"prints/{user_id}.bin",
    )
    if approve:
        registration = await registry.approve(registration.id, ADMIN)
    return registration


@pytest_asyncio.fixture
async def test_election(test_db: AsyncSession) -> Election:
    """A published, ongoing election with two candidates."""
    return await create_election(test_db)


@pytest_asyncio.fixture
async def candidates(test_election: Election) -> Callable[[str], Candidate]:
    by_name = {c.name: c for c in test_election.candidates}
    return by_name.__getitem__


@pytest_asyncio.fixture
async def approved_voter(test_db: AsyncSession) -> VoterRegistration:
    """An approved registration owned by VOTER."""
    return await register_voter(test_db, VOTER.user_id)


@pytest_asyncio.fixture
async def pending_voter(test_db: AsyncSession) -> VoterRegistration:
    """A pending registration owned by OTHER_VOTER."""
    return await register_voter(test_db, OTHER_VOTER.user_id, approve=False)
