"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status

from football_auth.api.dependencies import (
    get_app_settings,
    get_auth_context,
    get_auth_service,
    require_roles,
)
from football_auth.core.config import Settings
from football_auth.models.user import UserRole
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
from football_auth.services.auth import AuthResult, AuthService, Registration
from football_auth.services.credentials import Principal
from football_auth.services.gatekeeper import AuthContext
from football_auth.services.tokens import TokenPair

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Authentication failed"},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Access denied"},
    },
)

require_admin = require_roles([UserRole.admin])
require_premium = require_roles([UserRole.admin, UserRole.premium])


def _user_response(principal: Principal) -> UserResponse:
    return UserResponse(**principal.public_dict())


def _token_response(tokens: TokenPair) -> TokenResponse:
    return TokenResponse(**tokens.as_dict())


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(user=_user_response(result.principal), tokens=_token_response(result.tokens))


def _set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * 24 * 60 * 60,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


def _clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Email taken"}},
)
async def register(
    request: RegisterRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> AuthResponse:
    """Register a new user.

    Returns 409 Conflict if the email is already registered.
    """
    result = await auth_service.register(
        Registration(name=request.name, email=request.email, password=request.password)
    )
    _set_refresh_cookie(response, settings, result.tokens.refresh_token)
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> AuthResponse:
    """Authenticate and get JWT tokens."""
    result = await auth_service.login(request.email, request.password)
    _set_refresh_cookie(response, settings, result.tokens.refresh_token)
    return _auth_response(result)


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(
    http_request: Request,
    response: Response,
    request: RefreshRequest | None = Body(None),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    """Exchange a refresh token for a new access/refresh pair.

    The token is read from the body, falling back to the refresh cookie.
    """
    token = request.refresh_token if request else None
    if not token:
        token = http_request.cookies.get(settings.refresh_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Refresh token is required",
        )

    tokens = await auth_service.refresh(token)
    _set_refresh_cookie(response, settings, tokens.refresh_token)
    return _token_response(tokens)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    request: LogoutRequest | None = Body(None),
    context: AuthContext = Depends(get_auth_context),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    """Log out the current user.

    Revokes the bearer access token for the rest of its lifetime, plus the
    refresh token when one is supplied in the body.
    """
    await auth_service.logout(context.token, request.refresh_token if request else None)
    _clear_refresh_cookie(response, settings)
    logger.info(f"User logged out: {context.subject_id}")
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    context: AuthContext = Depends(get_auth_context),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Get the current user's information."""
    principal = await auth_service.get_principal(context.subject_id)
    return _user_response(principal)


@router.get("/admin/users", response_model=list[UserResponse])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: AuthContext = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
) -> list[UserResponse]:
    """List registered users (admin only)."""
    principals = await auth_service.list_principals(limit=limit, offset=offset)
    return [_user_response(p) for p in principals]


@router.patch("/admin/users/{user_id}/status", response_model=UserResponse)
async def set_user_status(
    user_id: str,
    request: UserStatusRequest,
    context: AuthContext = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Activate or deactivate a user (admin only).

    Deactivated users can no longer log in or refresh.
    """
    principal = await auth_service.set_active(user_id, request.is_active)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info(f"Admin {context.subject_id} set user {user_id} is_active={request.is_active}")
    return _user_response(principal)


@router.get("/premium/content", response_model=MessageResponse)
async def get_premium_content(
    context: AuthContext = Depends(require_premium),
) -> MessageResponse:
    """Premium content (premium and admin roles)."""
    return MessageResponse(message=f"Premium content unlocked for {context.role} members")
