"""Pydantic schemas for authentication API."""

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$"


class RegisterRequest(BaseModel):
    """Request for account registration."""

    name: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=190, pattern=EMAIL_PATTERN)
    password: str = Field(
        ...,
        min_length=8,
        max_length=30,
        description="8-30 characters with at least one uppercase, one lowercase and one digit",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Name should have at least 3 characters")
        return value

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if not (
            any(c.islower() for c in value)
            and any(c.isupper() for c in value)
            and any(c.isdigit() for c in value)
        ):
            raise ValueError("Password must contain uppercase, lowercase, and a number")
        return value


class LoginRequest(BaseModel):
    """Request for login."""

    email: str = Field(..., min_length=1, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Request for token refresh. Falls back to the refresh cookie when omitted."""

    refresh_token: str | None = Field(None, min_length=1)


class LogoutRequest(BaseModel):
    """Request for logout with optional refresh token revocation."""

    refresh_token: str | None = Field(
        None,
        description="Refresh token to revoke alongside the bearer access token.",
    )


class TokenResponse(BaseModel):
    """Response with JWT tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiry in seconds")


class UserResponse(BaseModel):
    """Public view of a principal."""

    id: str
    name: str
    email: str
    role: str
    is_active: bool
    is_verified: bool


class AuthResponse(BaseModel):
    """Response for register and login."""

    user: UserResponse
    tokens: TokenResponse


class UserStatusRequest(BaseModel):
    is_active: bool


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class ErrorResponse(BaseModel):
    """Body of every authentication or authorization error."""

    detail: str
    error: str
