from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pollgate.api.deps import get_db
from pollgate.schemas.analytics import VoteStatsOut
from pollgate.services.stats import get_vote_counts

router = APIRouter()


@router.get("/stats", response_model=VoteStatsOut)
def poll_stats(db: Session = Depends(get_db)) -> VoteStatsOut:
    """Public yes/no tally."""
    counts = get_vote_counts(db)
    return VoteStatsOut(yes_votes=counts["yes"], no_votes=counts["no"])
