"""Vote admission pipeline.

Runs one submission through the guards in order and returns a single
``AdmissionDecision``:

    rate limit -> token verify -> token/payload match -> payload shape
    -> IP ceiling -> device -> session -> insert

The first failing guard decides the outcome and nothing after it runs. Only
an accepted vote writes to the store; a rejected one leaves behind at most
its rate-limit hit.
"""

import logging

from pollgate.core.rate_limit import RateLimiter
from pollgate.schemas.vote import VoteSubmission
from pollgate.services.decision import AdmissionDecision, RejectReason
from pollgate.services.uniqueness import UniquenessEnforcer
from pollgate.services.vote_token import (
    VoteTokenClaims,
    VoteTokenError,
    VoteTokenErrorKind,
    VoteTokenService,
)

logger = logging.getLogger(__name__)

_TOKEN_REASONS = {
    VoteTokenErrorKind.EXPIRED: RejectReason.TOKEN_EXPIRED,
    VoteTokenErrorKind.BAD_SIGNATURE: RejectReason.TOKEN_BAD_SIGNATURE,
    VoteTokenErrorKind.MALFORMED: RejectReason.TOKEN_MALFORMED,
}


def claims_match(claims: VoteTokenClaims, submission: VoteSubmission) -> bool:
    """Check the submission repeats the token's session, gender and age.

    Age is compared as text: the token carries it exactly as it was typed
    on the profile step, the vote sends it as a number.
    """
    return (
        claims.session_id == submission.session_id
        and claims.gender == submission.gender
        and claims.age == str(submission.age)
    )


class AdmissionPipeline:
    def __init__(
        self,
        rate_limiter: RateLimiter,
        token_service: VoteTokenService,
        enforcer: UniquenessEnforcer,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.token_service = token_service
        self.enforcer = enforcer

    def admit(self, submission: VoteSubmission, ip: str) -> AdmissionDecision:
        """Decide whether ``submission`` from ``ip`` becomes a stored vote.

        Raises ``StoreUnavailableError`` if the store fails; no vote is
        recorded in that case.
        """
        decision = self._run(submission, ip)
        if decision.accepted:
            logger.info("Vote accepted (session=%s)", submission.session_id)
        else:
            logger.info(
                "Vote rejected: %s (ip=%s, session=%s)",
                decision.reason.value,
                ip,
                submission.session_id,
            )
        return decision

    def _run(self, submission: VoteSubmission, ip: str) -> AdmissionDecision:
        if not self.rate_limiter.allow(ip):
            return AdmissionDecision.reject(RejectReason.RATE_LIMITED)

        try:
            claims = self.token_service.verify(submission.vote_token)
        except VoteTokenError as e:
            return AdmissionDecision.reject(_TOKEN_REASONS[e.kind])

        if not claims_match(claims, submission):
            return AdmissionDecision.reject(RejectReason.TOKEN_MISMATCH)

        return self.enforcer.enforce(submission, ip)
