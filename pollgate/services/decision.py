"""Admission outcomes shared by the uniqueness enforcer and the pipeline."""

from dataclasses import dataclass
from enum import Enum

from pollgate.models.poll_response import PollResponse


class RejectReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_BAD_SIGNATURE = "token_bad_signature"
    TOKEN_MALFORMED = "token_malformed"
    TOKEN_MISMATCH = "token_mismatch"
    INVALID_PAYLOAD = "invalid_payload"
    IP_CAP_EXCEEDED = "ip_cap_exceeded"
    ALREADY_VOTED = "already_voted"
    DUPLICATE_SESSION = "duplicate_session"
    STORE_UNAVAILABLE = "store_unavailable"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_STATUS_CODES = {
    RejectReason.RATE_LIMITED: 429,
    RejectReason.TOKEN_EXPIRED: 401,
    RejectReason.TOKEN_BAD_SIGNATURE: 401,
    RejectReason.TOKEN_MALFORMED: 401,
    RejectReason.TOKEN_MISMATCH: 401,
    RejectReason.INVALID_PAYLOAD: 400,
    RejectReason.IP_CAP_EXCEEDED: 403,
    RejectReason.ALREADY_VOTED: 403,
    RejectReason.DUPLICATE_SESSION: 403,
    RejectReason.STORE_UNAVAILABLE: 500,
}

_MESSAGES = {
    RejectReason.RATE_LIMITED: "Too many votes from your network. Please try again later.",
    RejectReason.TOKEN_EXPIRED: "Your voting session expired. Please start again.",
    RejectReason.TOKEN_BAD_SIGNATURE: "Invalid vote token.",
    RejectReason.TOKEN_MALFORMED: "Invalid vote token.",
    RejectReason.TOKEN_MISMATCH: "Vote does not match your voting session.",
    RejectReason.INVALID_PAYLOAD: "Invalid vote.",
    RejectReason.IP_CAP_EXCEEDED: "Too many votes have been cast from your network.",
    RejectReason.ALREADY_VOTED: "You have already voted from this device.",
    RejectReason.DUPLICATE_SESSION: "This vote has already been recorded.",
    RejectReason.STORE_UNAVAILABLE: "Voting is temporarily unavailable.",
}


@dataclass(frozen=True)
class AdmissionDecision:
    accepted: bool
    reason: RejectReason | None = None
    record: PollResponse | None = None

    @classmethod
    def accept(cls, record: PollResponse) -> "AdmissionDecision":
        return cls(accepted=True, record=record)

    @classmethod
    def reject(cls, reason: RejectReason) -> "AdmissionDecision":
        return cls(accepted=False, reason=reason)
