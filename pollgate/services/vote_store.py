"""Vote store backed by the ``poll_responses`` table.

The unique constraints on ``session_id`` and ``device_id`` are the final
word on duplicates: ``insert_unique`` relies on them instead of the earlier
read checks, which can race when two submissions for the same key arrive
together.
"""

import logging
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pollgate.models.poll_response import PollResponse

logger = logging.getLogger(__name__)


class InsertResult(str, Enum):
    OK = "ok"
    CONFLICT_ON_DEVICE_ID = "conflict_on_device_id"
    CONFLICT_ON_SESSION_ID = "conflict_on_session_id"


class StoreUnavailableError(Exception):
    """Raised when the vote store cannot be reached or cannot confirm a write."""


class VoteStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def count_by_ip(self, ip: str) -> int:
        try:
            return self.db.scalar(
                select(func.count()).select_from(PollResponse).where(PollResponse.ip == ip)
            )
        except SQLAlchemyError as e:
            raise StoreUnavailableError("Failed to count votes by IP") from e

    def exists_by_device(self, device_id: str) -> bool:
        return self._exists(PollResponse.device_id == device_id)

    def exists_by_session(self, session_id: str) -> bool:
        return self._exists(PollResponse.session_id == session_id)

    def _exists(self, criterion) -> bool:
        try:
            found = self.db.scalar(select(PollResponse.id).where(criterion).limit(1))
        except SQLAlchemyError as e:
            raise StoreUnavailableError("Failed to look up existing vote") from e
        return found is not None

    def insert_unique(self, record: PollResponse) -> InsertResult:
        """Insert ``record`` atomically, reporting which unique key collided.

        Any failure other than a uniqueness conflict rolls the transaction back
        and raises ``StoreUnavailableError``; the vote is never reported as
        accepted unless the commit succeeded.
        """
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self._classify_conflict(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("Failed to insert vote") from e

        try:
            self.db.refresh(record)
        except SQLAlchemyError as e:
            # Committed, but the row can't be read back; report the outcome as unknown
            self.db.rollback()
            raise StoreUnavailableError("Failed to confirm vote insert") from e
        return InsertResult.OK

    def _classify_conflict(self, record: PollResponse) -> InsertResult:
        """Work out which constraint rejected ``record`` after a rolled-back insert."""
        if record.device_id is not None and self.exists_by_device(record.device_id):
            return InsertResult.CONFLICT_ON_DEVICE_ID
        if self.exists_by_session(record.session_id):
            return InsertResult.CONFLICT_ON_SESSION_ID
        # The conflicting row is not visible to us; a half-known outcome is a fault
        logger.error(
            "Unique constraint violation with no visible conflicting vote (session=%s)",
            record.session_id,
        )
        raise StoreUnavailableError("Could not confirm vote insert")
