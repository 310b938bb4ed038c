"""Pydantic schemas for funnel analytics and reporting.

Response fields are serialized in camelCase for the poll frontend.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pollgate.models.analytics_event import AnalyticsEventType
from pollgate.schemas.vote import OpaqueId


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyticsEventIn(CamelModel):
    type: AnalyticsEventType
    session_id: OpaqueId | None = None
    device_id: OpaqueId | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class OkResponse(BaseModel):
    ok: bool = True


class VoteStatsOut(CamelModel):
    yes_votes: int
    no_votes: int


class FunnelOut(CamelModel):
    vote_submitted: int
    vote_not_submitted: int


class GenderCount(CamelModel):
    gender: str | None
    count: int


class AnswerCount(CamelModel):
    answer: str
    count: int


class AgeRangeBreakdown(CamelModel):
    range: str
    male: int
    female: int


class SummaryOut(CamelModel):
    funnel: FunnelOut
    vote_not_submitted_by_gender: list[GenderCount]
    total_votes: int
    votes_by_answer: list[AnswerCount]
    votes_by_gender: list[GenderCount]
    yes_votes_by_age_and_gender: list[AgeRangeBreakdown]
    no_votes_by_age_and_gender: list[AgeRangeBreakdown]
