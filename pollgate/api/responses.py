"""JSON bodies for rejected requests: a readable ``detail`` plus a stable ``reason``."""

from starlette.responses import JSONResponse

from pollgate.schemas.vote import RejectionOut
from pollgate.services.decision import RejectReason

# OpenAPI documentation for endpoints that can reject with a reason code
REJECTION_RESPONSES = {
    400: {"model": RejectionOut, "description": "Invalid payload"},
    401: {"model": RejectionOut, "description": "Vote token expired, forged or mismatched"},
    403: {"model": RejectionOut, "description": "IP ceiling reached or already voted"},
    429: {"model": RejectionOut, "description": "Rate limited"},
    500: {"model": RejectionOut, "description": "Vote store unavailable"},
}


def rejection_response(
    reason: RejectReason, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=reason.status_code,
        content={"detail": reason.message, "reason": reason.value},
        headers=headers,
    )
