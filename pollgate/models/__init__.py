from pollgate.models.analytics_event import AnalyticsEvent, AnalyticsEventType
from pollgate.models.base import Base
from pollgate.models.poll_response import Answer, Gender, PollResponse

__all__ = [
    "Base",
    "PollResponse",
    "Gender",
    "Answer",
    "AnalyticsEvent",
    "AnalyticsEventType",
]
