"""Funnel event logging (public) and the reporting summary (API key)."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pollgate.api.deps import get_db, require_api_key
from pollgate.api.responses import rejection_response
from pollgate.core.rate_limit import get_client_ip, summary_rate_limiter
from pollgate.schemas.analytics import AnalyticsEventIn, OkResponse, SummaryOut
from pollgate.services.analytics import log_event
from pollgate.services.decision import RejectReason
from pollgate.services.stats import get_summary

router = APIRouter()


@router.post("/log", response_model=OkResponse)
def log_analytics_event(
    body: AnalyticsEventIn,
    request: Request,
    db: Session = Depends(get_db),
) -> OkResponse:
    """Store a funnel event. A storage failure is reported as ``ok: false``, never an error."""
    entry = log_event(
        db,
        body.type,
        device_id=body.device_id,
        session_id=body.session_id,
        ip=get_client_ip(request),
        context=body.context,
    )
    return OkResponse(ok=entry is not None)


@router.get("/summary", response_model=SummaryOut, dependencies=[Depends(require_api_key)])
def analytics_summary(request: Request, db: Session = Depends(get_db)):
    client_ip = get_client_ip(request)
    if not summary_rate_limiter.allow(client_ip):
        retry_after = summary_rate_limiter.retry_after_seconds(client_ip)
        return rejection_response(
            RejectReason.RATE_LIMITED, headers={"Retry-After": str(retry_after)}
        )
    return SummaryOut.model_validate(get_summary(db))
