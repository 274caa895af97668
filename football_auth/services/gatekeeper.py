"""Per-request authentication and role-based authorization.

Authentication runs extract -> revocation check -> verify. The revocation
check comes first so a logged-out token is reported as revoked even while
its signature and expiry are still good. Authorization is a separate stage
that callers compose on top of an authenticated context.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from football_auth.core.errors import (
    ConfigError,
    ForbiddenError,
    MalformedError,
    MissingTokenError,
    NoRoleError,
    RevocationStoreUnavailableError,
    RevokedTokenError,
    RoleConfigurationError,
)
from football_auth.models.user import UserRole
from football_auth.services.revocation import RevocationStore
from football_auth.services.tokens import TokenCodec, TokenKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Request-scoped identity attached after successful authentication."""

    subject_id: str
    role: str | None
    token: str
    expires_at: datetime


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class Gatekeeper:
    """Authenticate bearer tokens. Never mutates the revocation store."""

    def __init__(self, codec: TokenCodec, revocations: RevocationStore):
        self.codec = codec
        self.revocations = revocations

    async def authenticate(self, authorization: str | None) -> AuthContext:
        token = extract_bearer_token(authorization)
        if token is None:
            raise MissingTokenError()

        try:
            revoked = await self.revocations.is_revoked(token)
        except RevocationStoreUnavailableError:
            logger.error("Rejecting request: revocation store unavailable")
            raise
        if revoked:
            logger.warning("Revoked token presented")
            raise RevokedTokenError()

        claims = self.codec.verify(token)
        if claims.kind is not TokenKind.ACCESS:
            logger.warning(f"{claims.kind.value} token presented as bearer credential")
            raise MalformedError()

        return AuthContext(
            subject_id=claims.subject_id,
            role=claims.role,
            token=token,
            expires_at=claims.expires_at,
        )


def authorize(context: AuthContext | None, allowed_roles: Iterable[str]) -> AuthContext:
    """Check the context's role against ``allowed_roles``.

    No role is a client-side rejection; an empty allow-set is a server
    configuration fault.
    """
    if context is None or not context.role:
        raise NoRoleError()
    allowed = tuple(allowed_roles)
    if not allowed:
        logger.error("Role check invoked with an empty allow-set")
        raise RoleConfigurationError()
    if context.role not in allowed:
        logger.warning(f"User {context.subject_id} with role {context.role} denied")
        raise ForbiddenError()
    return context


@dataclass(frozen=True)
class RolePolicy:
    """An ordered, validated set of roles permitted on a route.

    Built once when the route is registered; an empty or unknown role list
    fails there with ConfigError instead of on the first request.
    """

    roles: tuple[str, ...]

    @classmethod
    def of(cls, roles: Iterable[str | UserRole]) -> "RolePolicy":
        ordered: list[str] = []
        for role in roles:
            value = role.value if isinstance(role, UserRole) else str(role)
            if value not in ordered:
                ordered.append(value)
        if not ordered:
            raise ConfigError("Role policy requires at least one role")
        known = {r.value for r in UserRole}
        unknown = [r for r in ordered if r not in known]
        if unknown:
            raise ConfigError(f"Unknown roles in policy: {', '.join(unknown)}")
        return cls(roles=tuple(ordered))

    def check(self, context: AuthContext | None) -> AuthContext:
        return authorize(context, self.roles)
