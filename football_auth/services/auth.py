"""Authentication service: the only component that mints token pairs."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

from football_auth.core.errors import (
    AuthError,
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from football_auth.models.user import UserRole
from football_auth.services.credentials import (
    CredentialStore,
    NewPrincipal,
    Principal,
    normalize_email,
)
from football_auth.services.passwords import PasswordHasher
from football_auth.services.revocation import RevocationStore
from football_auth.services.tokens import TokenCodec, TokenKind, TokenPair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    name: str
    email: str
    password: str


@dataclass(frozen=True)
class AuthResult:
    principal: Principal
    tokens: TokenPair


class AuthService:
    """Register, log in, refresh and log out.

    Collaborators are passed in explicitly; nothing here reads global state.
    Password hashing runs in a worker thread to keep the event loop free.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        revocations: RevocationStore,
    ):
        self.credentials = credentials
        self.hasher = hasher
        self.codec = codec
        self.revocations = revocations
        self._dummy_digest: str | None = None

    async def register(self, registration: Registration) -> AuthResult:
        """Create a ``user`` principal and return it with a fresh token pair."""
        email = normalize_email(registration.email)
        if await self.credentials.find_by_email(email) is not None:
            raise ConflictError()

        password_hash = await asyncio.to_thread(self.hasher.hash, registration.password)
        principal = await self.credentials.create(
            NewPrincipal(
                name=registration.name.strip(),
                email=email,
                password_hash=password_hash,
                role=UserRole.user.value,
                is_active=True,
                is_verified=False,
            )
        )
        logger.info(f"Registered user {principal.id}")
        return AuthResult(principal=principal, tokens=self._issue_pair(principal))

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate by email and password.

        Raises InvalidCredentialsError for "no such user", "inactive" and
        "wrong password" alike, to prevent user enumeration.
        """
        principal = await self.credentials.find_by_email(email)

        if principal is None or not principal.is_active:
            # Perform a dummy comparison so timing matches the real path
            dummy_digest = await self._get_dummy_digest()
            await asyncio.to_thread(self.hasher.compare, password, dummy_digest)
            logger.warning("Login failed: unknown or inactive account")
            raise InvalidCredentialsError()

        if not await asyncio.to_thread(self.hasher.compare, password, principal.password_hash):
            logger.warning(f"Login failed: wrong password for user {principal.id}")
            raise InvalidCredentialsError()

        logger.info(f"User logged in: {principal.id}")
        return AuthResult(principal=principal, tokens=self._issue_pair(principal))

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a brand-new pair.

        The presented refresh token stays valid; revoking it is the caller's
        choice (see ``logout``). A store outage propagates as
        RevocationStoreUnavailableError.
        """
        try:
            claims = self.codec.verify(refresh_token)
        except AuthError as e:
            raise InvalidTokenError() from e

        if claims.kind is not TokenKind.REFRESH:
            logger.warning(f"Refresh attempted with {claims.kind.value} token")
            raise InvalidTokenError()

        if await self.revocations.is_revoked(refresh_token):
            logger.warning(f"Revoked refresh token used by {claims.subject_id}")
            raise InvalidTokenError()

        principal = await self.credentials.find_by_id(claims.subject_id)
        if principal is None or not principal.is_active:
            raise InvalidTokenError()

        return self._issue_pair(principal)

    async def logout(self, access_token: str | None, refresh_token: str | None = None) -> None:
        """Revoke the given tokens. Never raises.

        A missing token is a no-op. Tokens that do not verify are still
        pushed to the store; the store never parses them.
        """
        for token in (access_token, refresh_token):
            if not token:
                continue
            ttl = self._revocation_ttl(token)
            if ttl is None:
                continue
            try:
                await self.revocations.revoke(token, ttl)
            except Exception:
                logger.exception("Token revocation failed during logout")

    async def get_principal(self, principal_id: str) -> Principal:
        principal = await self.credentials.find_by_id(principal_id)
        if principal is None or not principal.is_active:
            raise InvalidTokenError()
        return principal

    async def list_principals(self, limit: int = 100, offset: int = 0) -> list[Principal]:
        return await self.credentials.list_principals(limit=limit, offset=offset)

    async def set_active(self, principal_id: str, is_active: bool) -> Principal | None:
        return await self.credentials.update_active_flag(principal_id, is_active)

    def _issue_pair(self, principal: Principal) -> TokenPair:
        return self.codec.issue_pair(principal.id, principal.role)

    def _revocation_ttl(self, token: str) -> timedelta | None:
        """How long a revocation entry for ``token`` must live.

        Exactly the remaining lifetime when the token verifies; the
        access-token lifetime when it cannot be decoded; None when it has
        already expired and needs no entry.
        """
        remaining = self.codec.remaining_lifetime(token)
        if remaining is None:
            return self.codec.access_ttl
        if remaining <= timedelta(0):
            return None
        return remaining

    async def _get_dummy_digest(self) -> str:
        if self._dummy_digest is None:
            self._dummy_digest = await asyncio.to_thread(self.hasher.hash, "dummy-password")
        return self._dummy_digest
