"""Bearer-token authentication middleware.

Every request under a protected prefix (``/api`` by default) must carry a
valid, unrevoked access token, except the public auth endpoints. On success
the AuthContext is attached to ``request.state.auth`` for route dependencies;
role checks stay with the routes.
"""

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from football_auth.api.error_handling import error_response
from football_auth.core.errors import AuthError, ErrorKind

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/api",)

# Endpoints that authenticate with credentials or a refresh token instead
PUBLIC_PATHS = (
    "/api/auth/register",
    "/api/auth/login",
    "/api/auth/refresh-token",
)


def path_matches(path: str, prefix: str) -> bool:
    """Exact or segment-boundary match, so /apiary does not match /api."""
    return path == prefix or path.startswith(prefix + "/")


def requires_authentication(
    path: str,
    protected_prefixes: tuple[str, ...] = PROTECTED_PREFIXES,
    public_paths: tuple[str, ...] = PUBLIC_PATHS,
) -> bool:
    normalized = path.rstrip("/") or "/"
    if normalized in public_paths:
        return False
    return any(path_matches(normalized, prefix) for prefix in protected_prefixes)


class GatekeeperMiddleware(BaseHTTPMiddleware):
    """Authenticate protected requests with the app's Gatekeeper."""

    def __init__(
        self,
        app: ASGIApp,
        protected_prefixes: tuple[str, ...] = PROTECTED_PREFIXES,
        public_paths: tuple[str, ...] = PUBLIC_PATHS,
    ):
        super().__init__(app)
        self.protected_prefixes = protected_prefixes
        self.public_paths = public_paths

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # CORS preflight never carries credentials
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if not requires_authentication(path, self.protected_prefixes, self.public_paths):
            return await call_next(request)

        gatekeeper = request.app.state.gatekeeper
        try:
            request.state.auth = await gatekeeper.authenticate(request.headers.get("Authorization"))
        except AuthError as e:
            if e.kind is ErrorKind.STORE_UNAVAILABLE:
                logger.error(f"Revocation store unavailable for: {request.method} {path}")
            elif e.kind is not ErrorKind.MISSING_TOKEN:
                logger.warning(f"Rejected {e.kind.value} for: {request.method} {path}")
            return error_response(e)

        return await call_next(request)
