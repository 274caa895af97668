"""Error taxonomy for authentication and authorization.

Every error carries an explicit ``ErrorKind``. The request boundary switches
on the kind through ``ERROR_STATUS`` rather than on exception class names, so
adding a kind without a status mapping is caught by the test-suite.
"""

from enum import Enum


class ErrorKind(str, Enum):
    CONFIG = "config_error"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    MISSING_TOKEN = "missing_token"
    REVOKED_TOKEN = "revoked_token"
    EXPIRED_TOKEN = "expired_token"
    MALFORMED_TOKEN = "malformed_token"
    NO_ROLE = "no_role"
    FORBIDDEN = "forbidden"
    ROLE_MISCONFIGURED = "role_misconfigured"
    STORE_UNAVAILABLE = "store_unavailable"


# HTTP status for each kind, used when an error reaches the request boundary.
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.CONFIG: 500,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.MISSING_TOKEN: 401,
    ErrorKind.REVOKED_TOKEN: 401,
    ErrorKind.EXPIRED_TOKEN: 401,
    ErrorKind.MALFORMED_TOKEN: 403,
    ErrorKind.NO_ROLE: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.ROLE_MISCONFIGURED: 500,
    ErrorKind.STORE_UNAVAILABLE: 401,
}


class AuthError(Exception):
    """Base authentication error."""

    kind: ErrorKind = ErrorKind.INVALID_TOKEN
    default_message: str = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.kind]

    @property
    def public_message(self) -> str:
        """Message safe to return to the client."""
        return self.message


class ConfigError(AuthError):
    """Fatal misconfiguration, e.g. no signing secret."""

    kind = ErrorKind.CONFIG
    default_message = "Server configuration error"

    @property
    def public_message(self) -> str:
        return self.default_message


class ConflictError(AuthError):
    """Registration collides with an existing account."""

    kind = ErrorKind.CONFLICT
    default_message = "Email already registered"


class InvalidCredentialsError(AuthError):
    """Unknown email, inactive account, or wrong password.

    The three cases share one message so callers cannot tell them apart.
    """

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    """A refresh token could not be exchanged for a new pair."""

    kind = ErrorKind.INVALID_TOKEN
    default_message = "Invalid token"


class MissingTokenError(AuthError):
    kind = ErrorKind.MISSING_TOKEN
    default_message = "Access token required"


class RevokedTokenError(AuthError):
    kind = ErrorKind.REVOKED_TOKEN
    default_message = "Token has been revoked"


class ExpiredError(AuthError):
    """Token signature is valid but its expiry has passed. Clients should refresh."""

    kind = ErrorKind.EXPIRED_TOKEN
    default_message = "Token has expired"


class MalformedError(AuthError):
    """Bad signature, unparseable structure, or wrong token kind."""

    kind = ErrorKind.MALFORMED_TOKEN
    default_message = "Invalid token"


class NoRoleError(AuthError):
    kind = ErrorKind.NO_ROLE
    default_message = "Access denied: No role specified"


class ForbiddenError(AuthError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Access denied: Insufficient permissions"


class RoleConfigurationError(AuthError):
    """A route was guarded with an empty allow-set."""

    kind = ErrorKind.ROLE_MISCONFIGURED
    default_message = "Server configuration error: No roles specified"


class RevocationStoreUnavailableError(AuthError):
    """The revocation store could not be reached.

    Callers must reject the request; the client only sees a generic failure.
    """

    kind = ErrorKind.STORE_UNAVAILABLE
    default_message = "Revocation store unavailable"

    @property
    def public_message(self) -> str:
        return "Authentication failed"
