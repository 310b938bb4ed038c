"""Short-lived capability tokens binding a vote to its profile step.

The profile screen asks for a token carrying ``sessionId``, ``gender`` and
``age``; the vote must present that token back with identical values
before it expires. Nothing is stored server-side: the HMAC signature and the
expiry claim carry all the state.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import jwt

from pollgate.core.config import get_settings

CLAIM_FIELDS = ("sessionId", "gender", "age")


class VoteTokenErrorKind(str, Enum):
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED = "malformed"


class VoteTokenError(Exception):
    """Raised when a vote token cannot be accepted."""

    def __init__(self, kind: VoteTokenErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


@dataclass(frozen=True)
class VoteTokenClaims:
    session_id: str
    gender: str
    age: str
    issued_at: int
    expires_at: int


class VoteTokenService:
    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 120,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock
        self.ttl_seconds = ttl_seconds

    def issue(self, session_id: str, gender: str, age: str) -> str:
        """Sign a token whose claims are exactly the three inputs plus iat/exp."""
        now = int(self._clock())
        payload = {
            "sessionId": session_id,
            "gender": gender,
            "age": age,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str | None) -> VoteTokenClaims:
        """Return the token's claims or raise ``VoteTokenError``.

        The signature is checked first, so a forged token is reported as
        ``BAD_SIGNATURE`` even when it is also expired.
        """
        if not isinstance(token, str) or not token:
            raise VoteTokenError(VoteTokenErrorKind.MALFORMED, "Missing vote token")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat"],
                    # Expiry is checked below against our own clock
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise VoteTokenError(VoteTokenErrorKind.BAD_SIGNATURE, "Invalid token signature") from e
        except jwt.PyJWTError as e:
            raise VoteTokenError(VoteTokenErrorKind.MALFORMED, "Invalid token") from e

        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not _is_int(issued_at) or not _is_int(expires_at):
            raise VoteTokenError(VoteTokenErrorKind.MALFORMED, "Invalid token timestamps")

        for field in CLAIM_FIELDS:
            value = payload.get(field)
            if not isinstance(value, str) or not value:
                raise VoteTokenError(VoteTokenErrorKind.MALFORMED, "Invalid token payload")

        if self._clock() > expires_at:
            raise VoteTokenError(VoteTokenErrorKind.EXPIRED, "Token expired")

        return VoteTokenClaims(
            session_id=payload["sessionId"],
            gender=payload["gender"],
            age=payload["age"],
            issued_at=issued_at,
            expires_at=expires_at,
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def get_vote_token_service() -> VoteTokenService:
    settings = get_settings()
    return VoteTokenService(
        secret=settings.vote_token_secret,
        ttl_seconds=settings.vote_token_ttl_seconds,
        algorithm=settings.vote_token_algorithm,
    )
