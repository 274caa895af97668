"""FastAPI dependencies wiring services to requests."""

from collections.abc import Awaitable, Callable, Iterable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from football_auth.core import get_db
from football_auth.core.config import Settings
from football_auth.models.user import UserRole
from football_auth.services.auth import AuthService
from football_auth.services.credentials import SqlCredentialStore
from football_auth.services.gatekeeper import AuthContext, Gatekeeper, RolePolicy
from football_auth.services.passwords import Argon2PasswordHasher, PasswordHasher
from football_auth.services.revocation import RevocationStore
from football_auth.services.tokens import TokenCodec

_password_hasher = Argon2PasswordHasher()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_revocation_store(request: Request) -> RevocationStore:
    return request.app.state.revocation_store


def get_gatekeeper(request: Request) -> Gatekeeper:
    return request.app.state.gatekeeper


def get_password_hasher() -> PasswordHasher:
    return _password_hasher


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    revocations: RevocationStore = Depends(get_revocation_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(SqlCredentialStore(db), hasher, codec, revocations)


async def get_auth_context(
    request: Request,
    gatekeeper: Gatekeeper = Depends(get_gatekeeper),
) -> AuthContext:
    """The authenticated context for this request.

    Reuses the context attached by GatekeeperMiddleware; authenticates here
    for routes the middleware does not cover.
    """
    context = getattr(request.state, "auth", None)
    if context is None:
        context = await gatekeeper.authenticate(request.headers.get("Authorization"))
        request.state.auth = context
    return context


def require_roles(
    roles: Iterable[str | UserRole],
) -> Callable[..., Awaitable[AuthContext]]:
    """Dependency factory guarding a route by role.

    The role list is validated when this is called, i.e. at route
    registration, so a misconfigured route fails at import time.
    """
    policy = RolePolicy.of(roles)

    async def _check_roles(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        return policy.check(context)

    return _check_roles
