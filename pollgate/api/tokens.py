"""Public endpoint issuing vote capability tokens after the profile step."""

from fastapi import APIRouter, Depends, Request

from pollgate.api.deps import get_token_service
from pollgate.core.config import get_settings
from pollgate.core.rate_limit import limiter
from pollgate.schemas.vote import TokenRequest, TokenResponse
from pollgate.services.vote_token import VoteTokenService

router = APIRouter()
settings = get_settings()


@router.post("/token", response_model=TokenResponse)
@limiter.limit(lambda: f"{settings.token_rate_limit_per_minute}/minute")
def issue_vote_token(
    request: Request,
    body: TokenRequest,
    token_service: VoteTokenService = Depends(get_token_service),
) -> TokenResponse:
    """Sign the declared session, gender and age. Malformed input is a 400."""
    token = token_service.issue(body.session_id, body.gender.value, body.age)
    return TokenResponse(token=token)
