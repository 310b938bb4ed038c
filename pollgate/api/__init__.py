from fastapi import APIRouter

from pollgate.api import analytics, poll, tokens, votes

api_router = APIRouter()


@api_router.get("/health", tags=["health"])
def api_health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "ok", "service": "api"}


api_router.include_router(tokens.router, tags=["tokens"])
api_router.include_router(votes.router, tags=["votes"])
api_router.include_router(poll.router, prefix="/poll", tags=["poll"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
