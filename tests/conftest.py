"""Pytest configuration and fixtures for pollgate tests."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pollgate.api.deps import get_db
from pollgate.core.rate_limit import summary_rate_limiter, vote_rate_limiter
from pollgate.main import app
from pollgate.models.base import Base
from pollgate.models.poll_response import PollResponse
from pollgate.services.vote_token import VoteTokenService

# Use SQLite in-memory for tests (fast, isolated)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_SECRET = "test-vote-token-secret-that-is-long-enough-for-hs256"


@pytest.fixture(autouse=True)
def _reset_rate_limiters() -> Generator[None, None, None]:
    """Module-level limiters keep state between requests; start every test empty."""
    vote_rate_limiter.reset()
    summary_rate_limiter.reset()
    yield
    vote_rate_limiter.reset()
    summary_rate_limiter.reset()


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close the session here, let the db fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def token_service() -> VoteTokenService:
    return VoteTokenService(TEST_SECRET, ttl_seconds=120)


def _make_vote(
    session_id: str = "s1",
    device_id: str | None = "device-1",
    ip: str = "203.0.113.7",
    gender: str = "male",
    age: int = 30,
    answer: str = "yes",
) -> PollResponse:
    return PollResponse(
        session_id=session_id,
        device_id=device_id,
        ip=ip,
        gender=gender,
        age=age,
        answer=answer,
    )


@pytest.fixture
def make_vote():
    """Factory for unsaved ``PollResponse`` rows."""
    return _make_vote


@pytest.fixture
def seed_votes(db: Session):
    """Insert ``count`` stored votes from ``ip`` with distinct sessions and devices."""

    def _seed(count: int, ip: str = "203.0.113.7", prefix: str = "seed", **fields) -> None:
        for i in range(count):
            db.add(
                _make_vote(session_id=f"{prefix}-s{i}", device_id=f"{prefix}-d{i}", ip=ip, **fields)
            )
        db.commit()

    return _seed
