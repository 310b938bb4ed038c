"""Pydantic schemas for token issuance and vote submission."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pollgate.models.poll_response import MAX_AGE, MIN_AGE, Answer, Gender

# Opaque client-generated identifiers (UUIDs in practice)
OPAQUE_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"

OpaqueId = Annotated[str, Field(pattern=OPAQUE_ID_PATTERN)]


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: OpaqueId = Field(alias="sessionId")
    gender: Gender
    # Decimal string, no leading zeros; the vote must echo it back as an integer
    age: str = Field(pattern=r"^[1-9][0-9]{0,2}$")


class TokenResponse(BaseModel):
    token: str


class VoteSubmission(BaseModel):
    """Raw vote body.

    Fields are deliberately untyped: the token cross-check runs on the values
    exactly as sent, and shape validation happens afterwards in the
    uniqueness enforcer (``VoteCandidate``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: Any = Field(default=None, alias="sessionId")
    device_id: Any = Field(default=None, alias="deviceId")
    gender: Any = None
    age: Any = None
    answer: Any = None
    vote_token: Any = Field(default=None, alias="voteToken")


class VoteCandidate(BaseModel):
    """A vote that passed shape validation and is ready for the uniqueness checks."""

    session_id: OpaqueId
    device_id: OpaqueId | None = None
    gender: Gender
    # Strict: "30", 30.0 and True are all rejected
    age: int = Field(strict=True, ge=MIN_AGE, le=MAX_AGE)
    answer: Answer
    ip: str = Field(min_length=1, max_length=64)

    @field_validator("device_id", mode="before")
    @classmethod
    def blank_device_is_absent(cls, v: Any) -> Any:
        # Clients with storage disabled send an empty device id
        if isinstance(v, str) and not v.strip():
            return None
        return v


class VoteAccepted(BaseModel):
    ok: bool = True


class RejectionOut(BaseModel):
    detail: str
    reason: str
