# Football Auth Services
from football_auth.services.auth import AuthResult, AuthService, Registration
from football_auth.services.credentials import (
    CredentialStore,
    NewPrincipal,
    Principal,
    SqlCredentialStore,
)
from football_auth.services.gatekeeper import AuthContext, Gatekeeper, RolePolicy, authorize
from football_auth.services.passwords import Argon2PasswordHasher, PasswordHasher
from football_auth.services.revocation import (
    DatabaseRevocationStore,
    MemoryRevocationStore,
    RedisRevocationStore,
    RevocationStore,
    build_revocation_store,
)
from football_auth.services.tokens import TokenClaims, TokenCodec, TokenKind, TokenPair

__all__ = [
    "Argon2PasswordHasher",
    "AuthContext",
    "AuthResult",
    "AuthService",
    "CredentialStore",
    "DatabaseRevocationStore",
    "Gatekeeper",
    "MemoryRevocationStore",
    "NewPrincipal",
    "PasswordHasher",
    "Principal",
    "RedisRevocationStore",
    "Registration",
    "RevocationStore",
    "RolePolicy",
    "SqlCredentialStore",
    "TokenClaims",
    "TokenCodec",
    "TokenKind",
    "TokenPair",
    "authorize",
    "build_revocation_store",
]
