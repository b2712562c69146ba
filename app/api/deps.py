"""
API dependencies for FastAPI dependency injection.

The request gate: every protected route resolves its caller here.

    no/garbled bearer credential     -> 401
    bad signature or expired token   -> 401
    user gone (or soft-deleted)      -> 401
    user banned or frozen            -> 403
    otherwise                        -> admitted; RoleChecker may still 403

The admitted ``User`` is handed to routes as a parameter and from there to
the services; nothing is stored in ambient state.
"""

from typing import Annotated, Iterable, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging import get_logger
from app.core.security import decode_access_token
from app.db.session import get_session
from app.models.user import User, UserRole, UserStatus
from app.schemas.token import TokenPayload
from app.services.moderation_service import ModerationService
from app.services.user_service import UserService

logger = get_logger(__name__)

# auto_error=False so a missing header gets our own error body
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login",
    auto_error=False,
)


def check_account_status(user: User) -> None:
    """
    Admission step of the gate: refuse banned and frozen accounts.

    Raises:
        AuthorizationError: If the account is banned or frozen
    """
    if user.status == UserStatus.BANNED:
        logger.warning(f"Banned user {user.id} attempted access")
        raise AuthorizationError("Account is banned")
    if user.status == UserStatus.FROZEN:
        logger.warning(f"Frozen user {user.id} attempted access")
        raise AuthorizationError("Account is frozen")


def get_current_user(
    session: Annotated[Session, Depends(get_session)],
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    Args:
        session: Database session
        token: JWT access token from the Authorization header

    Returns:
        Current, admitted user

    Raises:
        AuthenticationError: If the token is missing or invalid or the user is gone
        AuthorizationError: If the account is banned or frozen
    """
    if not token:
        raise AuthenticationError("Authorization header is required")

    try:
        payload = TokenPayload.model_validate(decode_access_token(token))
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise AuthenticationError("Invalid token")
    except PydanticValidationError:
        logger.warning("Token claims are incomplete")
        raise AuthenticationError("Invalid token")

    user = UserService.get_by_id(session, user_id=payload.sub)
    if user is None:
        logger.warning(f"User {payload.sub} not found")
        raise AuthenticationError("User not found")

    user = ModerationService(session).release_expired_restrictions(user)
    check_account_status(user)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


class RoleChecker:
    """
    Dependency that admits only users whose role is in ``allowed_roles``.

    Usage::

        @router.get("/x", dependencies=[Depends(RoleChecker({UserRole.ADMIN}))])
    """

    def __init__(self, allowed_roles: Iterable[UserRole]):
        self.allowed_roles = frozenset(allowed_roles)

    def __call__(self, current_user: CurrentUser) -> User:
        if current_user.role not in self.allowed_roles:
            logger.warning(
                f"Insufficient permissions. User {current_user.id} role: {current_user.role.value}"
            )
            raise AuthorizationError("Insufficient permissions")
        return current_user


get_current_admin_user = RoleChecker({UserRole.ADMIN, UserRole.SUPER_ADMIN})

AdminUser = Annotated[User, Depends(get_current_admin_user)]
