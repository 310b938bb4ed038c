"""Tests for the vote store (pollgate/services/vote_store.py)."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pollgate.models.poll_response import PollResponse
from pollgate.services.vote_store import InsertResult, StoreUnavailableError, VoteStore


class TestReads:
    def test_count_by_ip(self, db: Session, seed_votes):
        seed_votes(3, ip="198.51.100.1", prefix="a")
        seed_votes(2, ip="198.51.100.2", prefix="b")
        store = VoteStore(db)
        assert store.count_by_ip("198.51.100.1") == 3
        assert store.count_by_ip("198.51.100.2") == 2
        assert store.count_by_ip("198.51.100.3") == 0

    def test_exists_by_device_and_session(self, db: Session, make_vote):
        store = VoteStore(db)
        assert store.exists_by_device("device-1") is False
        assert store.exists_by_session("s1") is False

        store.insert_unique(make_vote(session_id="s1", device_id="device-1"))

        assert store.exists_by_device("device-1") is True
        assert store.exists_by_session("s1") is True
        assert store.exists_by_device("device-2") is False


class TestInsertUnique:
    def test_insert_ok(self, db: Session, make_vote):
        store = VoteStore(db)
        record = make_vote()
        assert store.insert_unique(record) is InsertResult.OK
        assert record.id is not None
        assert record.created_at is not None

    def test_duplicate_device_conflicts(self, db: Session, make_vote):
        store = VoteStore(db)
        store.insert_unique(make_vote(session_id="s1", device_id="device-1"))

        result = store.insert_unique(make_vote(session_id="s2", device_id="device-1"))

        assert result is InsertResult.CONFLICT_ON_DEVICE_ID
        assert db.query(PollResponse).count() == 1

    def test_duplicate_session_conflicts(self, db: Session, make_vote):
        store = VoteStore(db)
        store.insert_unique(make_vote(session_id="s1", device_id="device-1"))

        result = store.insert_unique(make_vote(session_id="s1", device_id="device-2"))

        assert result is InsertResult.CONFLICT_ON_SESSION_ID
        assert db.query(PollResponse).count() == 1

    def test_device_conflict_reported_before_session_conflict(self, db: Session, make_vote):
        store = VoteStore(db)
        store.insert_unique(make_vote(session_id="s1", device_id="device-1"))

        result = store.insert_unique(make_vote(session_id="s1", device_id="device-1"))

        assert result is InsertResult.CONFLICT_ON_DEVICE_ID

    def test_missing_device_ids_never_collide(self, db: Session, make_vote):
        store = VoteStore(db)
        assert store.insert_unique(make_vote(session_id="s1", device_id=None)) is InsertResult.OK
        assert store.insert_unique(make_vote(session_id="s2", device_id=None)) is InsertResult.OK
        assert db.query(PollResponse).count() == 2

    def test_session_still_usable_after_conflict(self, db: Session, make_vote):
        store = VoteStore(db)
        store.insert_unique(make_vote(session_id="s1", device_id="device-1"))
        store.insert_unique(make_vote(session_id="s1", device_id="device-2"))

        result = store.insert_unique(make_vote(session_id="s3", device_id="device-3"))

        assert result is InsertResult.OK


class TestStoreUnavailable:
    def _operational_error(self) -> OperationalError:
        return OperationalError("SELECT 1", {}, Exception("connection refused"))

    def test_commit_failure_raises_and_rolls_back(self, db: Session, make_vote):
        store = VoteStore(db)
        with patch.object(db, "commit", side_effect=self._operational_error()):
            with pytest.raises(StoreUnavailableError):
                store.insert_unique(make_vote())

        assert db.query(PollResponse).count() == 0

    def test_read_back_failure_after_commit_raises(self, db: Session, make_vote):
        store = VoteStore(db)
        with patch.object(db, "refresh", side_effect=self._operational_error()):
            with pytest.raises(StoreUnavailableError):
                store.insert_unique(make_vote())

    def test_read_failure_raises(self, db: Session):
        store = VoteStore(db)
        with patch.object(db, "scalar", side_effect=self._operational_error()):
            with pytest.raises(StoreUnavailableError):
                store.count_by_ip("198.51.100.1")
            with pytest.raises(StoreUnavailableError):
                store.exists_by_session("s1")
