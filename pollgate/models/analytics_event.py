from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from pollgate.core.time import utcnow
from pollgate.models.base import Base


class AnalyticsEventType(str, Enum):
    POLL_OPENED = "poll_opened"
    USER_INFO_MODAL_OPENED = "user_info_modal_opened"
    USER_INFO_MODAL_CLOSED = "user_info_modal_closed"
    USER_INFO_MODAL_TIMEOUT = "user_info_modal_timeout"
    POLL_QUESTION_MODAL_OPENED = "poll_question_modal_opened"
    POLL_QUESTION_MODAL_CLOSED = "poll_question_modal_closed"
    POLL_QUESTION_MODAL_TIMEOUT = "poll_question_modal_timeout"
    VOTE_SUBMITTED = "vote_submitted"
    VOTE_NOT_SUBMITTED = "vote_not_submitted"


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    type: Mapped[str] = mapped_column(String(40), index=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    device_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    ip: Mapped[str] = mapped_column(String(64))
    context: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
