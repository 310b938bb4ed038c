import logging

from fastapi import FastAPI
from fastapi import Request as FastAPIRequest
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from pollgate.api import api_router
from pollgate.api.responses import rejection_response
from pollgate.core.config import get_settings
from pollgate.core.rate_limit import limiter, rate_limit_exceeded_handler
from pollgate.services.decision import RejectReason
from pollgate.services.vote_store import StoreUnavailableError

settings = get_settings()

# Module loggers (admission, analytics, store) emit INFO-level diagnostics
logging.getLogger("pollgate").setLevel(logging.INFO)

# Explicit CORS methods for non-wildcard origins; must include every HTTP method used by the API
CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]

# Response headers browsers may read cross-origin
CORS_EXPOSE_HEADERS = ["Retry-After", "X-RateLimit-Remaining"]

app = FastAPI(
    title="pollgate",
    description="One anonymous vote per visitor on a single yes/no question",
    version="0.1.0",
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)

# Token issuance throttle
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

logger = logging.getLogger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: FastAPIRequest, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are a 400 with the ``invalid_payload`` reason."""
    logger.info("Invalid payload on %s %s", request.method, request.url.path)
    return rejection_response(RejectReason.INVALID_PAYLOAD)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(
    request: FastAPIRequest, exc: StoreUnavailableError
) -> JSONResponse:
    logger.error(
        "Vote store unavailable on %s %s", request.method, request.url.path, exc_info=exc
    )
    return rejection_response(RejectReason.STORE_UNAVAILABLE)


@app.exception_handler(Exception)
async def global_exception_handler(request: FastAPIRequest, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a generic 500 response."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error"}
    if not settings.is_production:
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# CORS
if settings.cors_origins.strip() == "*":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=CORS_EXPOSE_HEADERS,
    )
else:
    origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=["Content-Type", "X-API-Key"],
        expose_headers=CORS_EXPOSE_HEADERS,
    )

app.include_router(api_router, prefix="/api")


@app.get("/health")
def health_check():
    return {"status": "ok"}
