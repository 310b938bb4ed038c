"""Read-only reporting over stored votes and funnel events."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pollgate.models.analytics_event import AnalyticsEvent, AnalyticsEventType
from pollgate.models.poll_response import AGE_RANGES, Answer, Gender, PollResponse


def get_vote_counts(db: Session) -> dict[str, int]:
    """Return ``{"yes": n, "no": m}``."""
    rows = db.execute(
        select(PollResponse.answer, func.count()).group_by(PollResponse.answer)
    ).all()
    counts = {answer.value: 0 for answer in Answer}
    for answer, count in rows:
        if answer in counts:
            counts[answer] = count
    return counts


def _count_by(db: Session, column) -> list[tuple[str | None, int]]:
    rows = db.execute(select(column, func.count()).group_by(column).order_by(column)).all()
    return [(value, count) for value, count in rows]


def _age_gender_breakdown(db: Session) -> dict[str, list[dict]]:
    """Bucket votes per answer into the reporting age ranges, split by gender."""
    rows = db.execute(
        select(PollResponse.answer, PollResponse.gender, PollResponse.age, func.count()).group_by(
            PollResponse.answer, PollResponse.gender, PollResponse.age
        )
    ).all()

    breakdown = {
        answer.value: [
            {"range": label, **{gender.value: 0 for gender in Gender}}
            for label, _, _ in AGE_RANGES
        ]
        for answer in Answer
    }
    for answer, gender, age, count in rows:
        buckets = breakdown.get(answer)
        if buckets is None or gender not in Gender._value2member_map_:
            continue
        for bucket, (_, low, high) in zip(buckets, AGE_RANGES):
            if low <= age <= high:
                bucket[gender] += count
                break
    return breakdown


def get_summary(db: Session) -> dict:
    total_votes = db.scalar(select(func.count()).select_from(PollResponse))
    not_submitted = AnalyticsEvent.type == AnalyticsEventType.VOTE_NOT_SUBMITTED.value
    vote_not_submitted = db.scalar(
        select(func.count()).select_from(AnalyticsEvent).where(not_submitted)
    )

    gender_key = AnalyticsEvent.context["gender"].as_string()
    not_submitted_by_gender = db.execute(
        select(gender_key, func.count()).where(not_submitted).group_by(gender_key)
    ).all()

    breakdown = _age_gender_breakdown(db)
    return {
        "funnel": {"vote_submitted": total_votes, "vote_not_submitted": vote_not_submitted},
        "vote_not_submitted_by_gender": [
            {"gender": gender, "count": count} for gender, count in not_submitted_by_gender
        ],
        "total_votes": total_votes,
        "votes_by_answer": [
            {"answer": answer, "count": count}
            for answer, count in _count_by(db, PollResponse.answer)
        ],
        "votes_by_gender": [
            {"gender": gender, "count": count}
            for gender, count in _count_by(db, PollResponse.gender)
        ],
        "yes_votes_by_age_and_gender": breakdown[Answer.YES.value],
        "no_votes_by_age_and_gender": breakdown[Answer.NO.value],
    }
