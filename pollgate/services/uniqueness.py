"""One vote per device, per session, and at most N per IP."""

import logging

from pydantic import ValidationError

from pollgate.models.poll_response import PollResponse
from pollgate.schemas.vote import VoteCandidate, VoteSubmission
from pollgate.services.decision import AdmissionDecision, RejectReason
from pollgate.services.vote_store import InsertResult, VoteStore

logger = logging.getLogger(__name__)

_CONFLICT_REASONS = {
    InsertResult.CONFLICT_ON_DEVICE_ID: RejectReason.ALREADY_VOTED,
    InsertResult.CONFLICT_ON_SESSION_ID: RejectReason.DUPLICATE_SESSION,
}


class UniquenessEnforcer:
    """Validate a vote, run the cheap duplicate checks, then insert atomically.

    Checks run in a fixed order and stop at the first failure:
    payload shape, IP ceiling, device, session, insert. The read checks only
    save a write; the insert's unique constraints decide races.
    """

    def __init__(self, store: VoteStore, max_votes_per_ip: int) -> None:
        self.store = store
        self.max_votes_per_ip = max_votes_per_ip

    def validate(self, submission: VoteSubmission, ip: str) -> VoteCandidate | None:
        try:
            return VoteCandidate(
                session_id=submission.session_id,
                device_id=submission.device_id,
                gender=submission.gender,
                age=submission.age,
                answer=submission.answer,
                ip=ip,
            )
        except ValidationError as e:
            logger.info("Rejected vote payload: %s", e.errors(include_url=False))
            return None

    def enforce(self, submission: VoteSubmission, ip: str) -> AdmissionDecision:
        candidate = self.validate(submission, ip)
        if candidate is None:
            return AdmissionDecision.reject(RejectReason.INVALID_PAYLOAD)

        if self.store.count_by_ip(candidate.ip) >= self.max_votes_per_ip:
            return AdmissionDecision.reject(RejectReason.IP_CAP_EXCEEDED)

        if candidate.device_id is not None and self.store.exists_by_device(candidate.device_id):
            return AdmissionDecision.reject(RejectReason.ALREADY_VOTED)

        if self.store.exists_by_session(candidate.session_id):
            return AdmissionDecision.reject(RejectReason.DUPLICATE_SESSION)

        return self.commit(candidate)

    def commit(self, candidate: VoteCandidate) -> AdmissionDecision:
        record = PollResponse(
            session_id=candidate.session_id,
            device_id=candidate.device_id,
            ip=candidate.ip,
            gender=candidate.gender.value,
            age=candidate.age,
            answer=candidate.answer.value,
        )
        result = self.store.insert_unique(record)
        if result is not InsertResult.OK:
            return AdmissionDecision.reject(_CONFLICT_REASONS[result])
        return AdmissionDecision.accept(record)
