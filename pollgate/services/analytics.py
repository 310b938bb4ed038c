"""Funnel analytics: best-effort event inserts that never gate a vote."""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pollgate.core.time import utcnow
from pollgate.models.analytics_event import AnalyticsEvent, AnalyticsEventType

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    event_type: AnalyticsEventType,
    device_id: str | None,
    session_id: str | None,
    ip: str,
    context: dict[str, Any] | None = None,
) -> AnalyticsEvent | None:
    """Record a funnel event. Storage failures are logged and swallowed."""
    entry = AnalyticsEvent(
        type=event_type.value,
        session_id=session_id,
        device_id=device_id,
        ip=ip,
        context=context or {},
        created_at=utcnow(),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to store analytics event %s", event_type.value, exc_info=True)
        return None
    return entry
