"""
User routes for profile, status and self-service account operations.
Every route here requires an admitted caller.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.api.deps import CurrentUser
from app.core.logging import get_logger
from app.db.session import get_session
from app.schemas.moderation import (
    FreezeHistoryListResponse,
    FreezeHistoryResponse,
    FreezeRequest,
    FreezeResponse,
)
from app.schemas.user import (
    DeleteAccountRequest,
    MessageResponse,
    ProfileUpdate,
    StatusUpdateRequest,
    StatusUpdateResponse,
    UserResponse,
)
from app.services.history_service import HistoryService
from app.services.moderation_service import ModerationService
from app.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def get_current_user_profile(current_user: CurrentUser) -> UserResponse:
    """
    Get current user's profile.

    Args:
        current_user: Current authenticated user

    Returns:
        User profile data
    """
    return UserResponse.model_validate(current_user)


@router.put("/status", response_model=StatusUpdateResponse)
def update_status(
    request: StatusUpdateRequest,
    current_user: CurrentUser,
    session: Annotated[Session, Depends(get_session)],
) -> StatusUpdateResponse:
    """
    Change an account status.

    Users may move their own account between active, passive and frozen.
    Administrators may also set other users' status; bans go through the
    admin ban route instead.

    Args:
        request: Target user ID and the new status
        current_user: Current authenticated user
        session: Database session

    Returns:
        The updated user
    """
    user = ModerationService(session).update_status(
        current_user, user_id=request.user_id, new_status=request.status
    )
    return StatusUpdateResponse(user=UserResponse.model_validate(user))


@router.put("/profile", response_model=UserResponse)
def update_profile(
    changes: ProfileUpdate,
    current_user: CurrentUser,
    session: Annotated[Session, Depends(get_session)],
) -> UserResponse:
    """Update the caller's own profile. Omitted fields stay unchanged."""
    user = UserService.update_profile(session, current_user, changes)
    return UserResponse.model_validate(user)


@router.delete("/account", response_model=MessageResponse)
def delete_account(
    request: DeleteAccountRequest,
    current_user: CurrentUser,
    session: Annotated[Session, Depends(get_session)],
) -> MessageResponse:
    """Soft-delete the caller's account after re-checking the password."""
    UserService.soft_delete(session, current_user, password=request.password)
    return MessageResponse(message="Account deleted successfully")


@router.post("/freeze", response_model=FreezeResponse)
def freeze_account(
    request: FreezeRequest,
    current_user: CurrentUser,
    session: Annotated[Session, Depends(get_session)],
) -> FreezeResponse:
    """
    Freeze the caller's account for a number of days.

    The account is locked out until the freeze ends or an administrator
    sets it active again.
    """
    entry = ModerationService(session).freeze(
        current_user, duration_days=request.duration, reason=request.reason
    )
    return FreezeResponse(freeze=FreezeHistoryResponse.model_validate(entry))


@router.get("/freeze/history", response_model=FreezeHistoryListResponse)
def freeze_history(
    current_user: CurrentUser,
    session: Annotated[Session, Depends(get_session)],
) -> FreezeHistoryListResponse:
    histories = HistoryService(session).user_freeze_history(current_user.id)
    return FreezeHistoryListResponse(histories=histories)
