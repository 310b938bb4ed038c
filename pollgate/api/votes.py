"""Public endpoint for casting the single yes/no vote."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from pollgate.api.deps import get_admission_pipeline, get_db
from pollgate.api.responses import REJECTION_RESPONSES, rejection_response
from pollgate.core.rate_limit import get_client_ip
from pollgate.models.analytics_event import AnalyticsEventType
from pollgate.schemas.vote import VoteAccepted, VoteSubmission
from pollgate.services.admission import AdmissionPipeline
from pollgate.services.analytics import log_event
from pollgate.services.decision import RejectReason

router = APIRouter()


@router.post("/vote", response_model=VoteAccepted, responses=REJECTION_RESPONSES)
def submit_vote(
    submission: VoteSubmission,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    pipeline: AdmissionPipeline = Depends(get_admission_pipeline),
):
    """Admit or reject a vote. Rejections carry a machine-readable ``reason``.

    Every answer reports the submissions left in the caller's window as
    ``X-RateLimit-Remaining``.
    """
    client_ip = get_client_ip(request)
    decision = pipeline.admit(submission, client_ip)
    headers = {"X-RateLimit-Remaining": str(pipeline.rate_limiter.remaining(client_ip))}

    if not decision.accepted:
        if decision.reason is RejectReason.RATE_LIMITED:
            retry_after = pipeline.rate_limiter.retry_after_seconds(client_ip)
            headers["Retry-After"] = str(retry_after)
        return rejection_response(decision.reason, headers=headers)

    response.headers.update(headers)
    record = decision.record
    log_event(
        db,
        AnalyticsEventType.VOTE_SUBMITTED,
        device_id=record.device_id,
        session_id=record.session_id,
        ip=client_ip,
        context={"answer": record.answer, "gender": record.gender, "age": record.age},
    )
    return VoteAccepted()
