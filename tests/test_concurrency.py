"""Racing submissions: at most one vote per device and per session.

These use a file-backed SQLite database so every thread gets its own
connection and the unique constraints arbitrate between them.
"""

import threading
from collections import Counter
from collections.abc import Callable, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from pollgate.core.rate_limit import SlidingWindowRateLimiter
from pollgate.models.base import Base
from pollgate.models.poll_response import PollResponse
from pollgate.schemas.vote import VoteSubmission
from pollgate.services.admission import AdmissionPipeline
from pollgate.services.decision import RejectReason
from pollgate.services.uniqueness import UniquenessEnforcer
from pollgate.services.vote_store import InsertResult, VoteStore
from pollgate.services.vote_token import VoteTokenService

RACERS = 8


@pytest.fixture
def session_factory(tmp_path) -> Generator[Callable[[], Session], None, None]:
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _race(worker: Callable[[int], object]) -> list:
    barrier = threading.Barrier(RACERS)
    results = [None] * RACERS

    def run(i: int) -> None:
        barrier.wait()
        results[i] = worker(i)

    threads = [threading.Thread(target=run, args=(i,)) for i in range(RACERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def _count(factory: Callable[[], Session]) -> int:
    with factory() as db:
        return db.query(PollResponse).count()


class TestInsertRaces:
    def test_same_device_inserted_once(self, session_factory):
        def worker(i: int) -> InsertResult:
            with session_factory() as db:
                record = PollResponse(
                    session_id=f"s{i}",
                    device_id="shared-device",
                    ip=f"198.51.100.{i}",
                    gender="male",
                    age=30,
                    answer="yes",
                )
                return VoteStore(db).insert_unique(record)

        results = Counter(_race(worker))

        assert results[InsertResult.OK] == 1
        assert results[InsertResult.CONFLICT_ON_DEVICE_ID] == RACERS - 1
        assert _count(session_factory) == 1

    def test_same_session_inserted_once(self, session_factory):
        def worker(i: int) -> InsertResult:
            with session_factory() as db:
                record = PollResponse(
                    session_id="shared-session",
                    device_id=None,
                    ip="198.51.100.1",
                    gender="female",
                    age=44,
                    answer="no",
                )
                return VoteStore(db).insert_unique(record)

        results = Counter(_race(worker))

        assert results[InsertResult.OK] == 1
        assert results[InsertResult.CONFLICT_ON_SESSION_ID] == RACERS - 1
        assert _count(session_factory) == 1


class TestPipelineRaces:
    def test_concurrent_identical_votes_accept_exactly_one(self, session_factory):
        token_service = VoteTokenService("race-test-secret-with-thirty-two-bytes")
        limiter = SlidingWindowRateLimiter(RACERS, 60 * 60)
        token = token_service.issue("race-session", "male", "30")

        def worker(i: int):
            submission = VoteSubmission.model_validate(
                {
                    "sessionId": "race-session",
                    "deviceId": "race-device",
                    "gender": "male",
                    "age": 30,
                    "answer": "yes",
                    "voteToken": token,
                }
            )
            with session_factory() as db:
                enforcer = UniquenessEnforcer(VoteStore(db), max_votes_per_ip=20)
                pipeline = AdmissionPipeline(limiter, token_service, enforcer)
                return pipeline.admit(submission, "203.0.113.7")

        decisions = _race(worker)

        assert sum(d.accepted for d in decisions) == 1
        rejected = {d.reason for d in decisions if not d.accepted}
        assert rejected <= {RejectReason.ALREADY_VOTED, RejectReason.DUPLICATE_SESSION}
        assert _count(session_factory) == 1
