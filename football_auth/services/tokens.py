"""Signed, time-bounded JWTs for access and refresh.

The codec is the only place that knows the token layout. It is built from
explicit configuration and never reads the environment itself.
"""

import base64
import binascii
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from football_auth.core.config import Settings
from football_auth.core.errors import ConfigError, ExpiredError, MalformedError

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "iat", "exp", "type", "jti"]


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a token."""

    subject_id: str
    role: str | None
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    token_id: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _is_canonical_segment(segment: str) -> bool:
    """True when ``segment`` is unpadded base64url that re-encodes to itself.

    Lenient decoders accept padding and stray bits, which would give one
    token several spellings and several revocation fingerprints.
    """
    if not segment or "=" in segment:
        return False
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError):
        return False
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") == segment


class TokenCodec:
    """Issue and verify HMAC-signed JWTs.

    Expiry is checked against the injected clock with ``now >= expires_at``,
    so a token is already invalid at its exact expiry second.
    """

    def __init__(
        self,
        secret: str | None,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ConfigError("No JWT signing secret configured (set JWT_SECRET_KEY)")
        if access_ttl <= timedelta(0) or refresh_ttl <= timedelta(0):
            raise ConfigError("Token lifetimes must be positive")
        self._secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "TokenCodec":
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
            **kwargs,
        )

    def lifetime(self, kind: TokenKind) -> timedelta:
        return self.access_ttl if kind is TokenKind.ACCESS else self.refresh_ttl

    def issue(self, subject_id: str, role: str | None, kind: TokenKind) -> str:
        """Sign a new token for ``subject_id``."""
        issued_at = int(self._clock().timestamp())
        expires_at = issued_at + int(self.lifetime(kind).total_seconds())
        payload: dict[str, Any] = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": expires_at,
            "type": kind.value,
            # Two tokens minted in the same second must still differ
            "jti": secrets.token_hex(16),
        }
        if role is not None:
            payload["role"] = role
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def issue_pair(self, subject_id: str, role: str | None) -> TokenPair:
        return TokenPair(
            access_token=self.issue(subject_id, role, TokenKind.ACCESS),
            refresh_token=self.issue(subject_id, role, TokenKind.REFRESH),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def verify(self, token: str) -> TokenClaims:
        """Check signature, structure and expiry.

        Raises MalformedError for anything that is not a well-formed token
        signed with our secret, and ExpiredError when it is but has expired.
        """
        claims = self._decode(token)
        if self._clock() >= claims.expires_at:
            raise ExpiredError()
        return claims

    def remaining_lifetime(self, token: str) -> timedelta | None:
        """Time left before ``token`` expires, or None if it is not ours.

        Expired tokens return a zero or negative duration instead of raising.
        """
        try:
            claims = self._decode(token)
        except MalformedError:
            return None
        return claims.expires_at - self._clock()

    def _decode(self, token: str) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise MalformedError()
        if not all(_is_canonical_segment(segment) for segment in token.split(".")):
            raise MalformedError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
            )
        except PyJWTError as e:
            logger.debug(f"Token decode failed: {e}")
            raise MalformedError() from e

        try:
            kind = TokenKind(payload["type"])
            role = payload.get("role")
            if role is not None and not isinstance(role, str):
                raise ValueError("role claim must be a string")
            return TokenClaims(
                subject_id=str(payload["sub"]),
                role=role,
                kind=kind,
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
                token_id=str(payload["jti"]),
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedError() from e
