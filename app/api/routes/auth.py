"""
Authentication routes: registration, login and password management.
Provides JWT token-based authentication.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.api.deps import CurrentUser, check_account_status
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging import get_logger
from app.core.security import create_access_token
from app.db.session import get_session
from app.models.user import UserStatus
from app.schemas.token import (
    AuthResponse,
    PasswordChangeRequest,
    PasswordResetRequest,
    PasswordUpdateRequest,
)
from app.schemas.user import MessageResponse, UserCreate, UserLogin, UserResponse
from app.services.moderation_service import ModerationService
from app.services.password_reset_service import PasswordResetService
from app.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_in: UserCreate,
    session: Annotated[Session, Depends(get_session)],
) -> AuthResponse:
    """
    Register a new user and log them in.

    Args:
        user_in: User registration data
        session: Database session

    Returns:
        Access token and created user data

    Raises:
        ConflictError: If email or username already registered
    """
    user = UserService.create(session, user_create=user_in)
    logger.info(f"New user registered: {user.username} (ID: {user.id})")

    return AuthResponse(
        access_token=create_access_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    session: Annotated[Session, Depends(get_session)],
) -> AuthResponse:
    """
    Log in with email or username and password.

    The credential check comes first; a correct password for a banned,
    frozen or passive account is still refused, with 403.

    Args:
        credentials: Identifier (email or username) and password
        session: Database session

    Returns:
        Access token and user data

    Raises:
        AuthenticationError: If credentials are invalid
        AuthorizationError: If the account may not be used
    """
    user = UserService.authenticate(
        session, identifier=credentials.identifier, password=credentials.password
    )
    if not user:
        logger.warning("Failed login attempt")
        raise AuthenticationError("Invalid credentials")

    user = ModerationService(session).release_expired_restrictions(user)
    check_account_status(user)
    if user.status == UserStatus.PASSIVE:
        raise AuthorizationError(
            "Account is passive. Please contact support to reactivate your account."
        )

    logger.info(f"User logged in: {user.username} (ID: {user.id})")
    return AuthResponse(
        access_token=create_access_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/reset-password", response_model=MessageResponse)
def request_password_reset(
    request: PasswordResetRequest,
    session: Annotated[Session, Depends(get_session)],
) -> MessageResponse:
    """
    Email a password reset token.
    Always answers with the same message so addresses cannot be enumerated.
    """
    message = PasswordResetService.request_reset(session, email=request.email)
    return MessageResponse(message=message)


@router.post("/update-password", response_model=MessageResponse)
def update_password(
    request: PasswordUpdateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> MessageResponse:
    """Set a new password using an emailed reset token."""
    PasswordResetService.reset_password(
        session, token=request.reset_token, new_password=request.new_password
    )
    return MessageResponse(message="Password updated successfully")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    request: PasswordChangeRequest,
    current_user: CurrentUser,
    session: Annotated[Session, Depends(get_session)],
) -> MessageResponse:
    """Change the caller's password after verifying the current one."""
    UserService.change_password(
        session, current_user, old_password=request.old_password, new_password=request.new_password
    )
    return MessageResponse(message="Password changed successfully")
