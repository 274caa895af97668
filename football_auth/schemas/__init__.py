from football_auth.schemas.auth import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    UserStatusRequest,
)

__all__ = [
    "AuthResponse",
    "ErrorResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "RefreshRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserResponse",
    "UserStatusRequest",
]
