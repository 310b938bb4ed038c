from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pollgate.core.time import utcnow
from pollgate.models.base import Base


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Answer(str, Enum):
    YES = "yes"
    NO = "no"


MIN_AGE = 16
MAX_AGE = 120

# Age buckets used by the reporting summary (inclusive bounds)
AGE_RANGES = [
    ("16-30", 16, 30),
    ("31-50", 31, 50),
    ("51-70", 51, 70),
    ("71-90", 71, 90),
    ("91-120", 91, 120),
]


class PollResponse(Base):
    """An accepted vote. Rows are never updated or deleted by the application."""

    __tablename__ = "poll_responses"
    __table_args__ = (
        UniqueConstraint("session_id", name="uq_poll_responses_session_id"),
        # NULL device ids never collide, so devices without storage can still vote
        UniqueConstraint("device_id", name="uq_poll_responses_device_id"),
        CheckConstraint("age >= 16 AND age <= 120", name="ck_poll_responses_age_range"),
        CheckConstraint("answer IN ('yes', 'no')", name="ck_poll_responses_answer"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    device_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ip: Mapped[str] = mapped_column(String(64), index=True)
    gender: Mapped[str] = mapped_column(String(10), index=True)
    age: Mapped[int] = mapped_column(Integer)
    answer: Mapped[str] = mapped_column(String(3), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
