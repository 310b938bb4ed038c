from pollgate.schemas.analytics import AnalyticsEventIn, SummaryOut, VoteStatsOut
from pollgate.schemas.vote import TokenRequest, TokenResponse, VoteAccepted, VoteSubmission

__all__ = [
    "TokenRequest",
    "TokenResponse",
    "VoteSubmission",
    "VoteAccepted",
    "AnalyticsEventIn",
    "SummaryOut",
    "VoteStatsOut",
]
