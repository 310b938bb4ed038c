import secrets
from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from pollgate.core.config import get_settings
from pollgate.core.rate_limit import vote_rate_limiter
from pollgate.db.session import SessionLocal
from pollgate.services.admission import AdmissionPipeline
from pollgate.services.uniqueness import UniquenessEnforcer
from pollgate.services.vote_store import VoteStore
from pollgate.services.vote_token import VoteTokenService, get_vote_token_service


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_token_service() -> VoteTokenService:
    return get_vote_token_service()


def get_admission_pipeline(
    db: Session = Depends(get_db),
    token_service: VoteTokenService = Depends(get_token_service),
) -> AdmissionPipeline:
    settings = get_settings()
    enforcer = UniquenessEnforcer(VoteStore(db), max_votes_per_ip=settings.max_votes_per_ip)
    return AdmissionPipeline(vote_rate_limiter, token_service, enforcer)


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """Only allow callers presenting the configured admin API key."""
    expected = get_settings().admin_api_key
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - invalid or missing API key",
        )
