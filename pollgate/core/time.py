"""UTC clock helpers.

``utcnow()`` returns **naive** UTC datetimes for SQLAlchemy ``DateTime``
columns (SQLite and PostgreSQL without ``timezone=True``). ``epoch_millis()``
is the millisecond wall clock used by the sliding window limiter.
"""

import time
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def epoch_millis() -> int:
    """Return the current wall-clock time in integer milliseconds."""
    return time.time_ns() // 1_000_000
