"""
Admin routes: role changes, bans and the moderation ledger.
Restricted to ADMIN and SUPER_ADMIN; finer rules live in the policy module.
"""

from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.api.deps import AdminUser
from app.core.logging import get_logger
from app.db.session import get_session
from app.schemas.moderation import (
    BanDetails,
    BanHistoryPage,
    BanRequest,
    BanResponse,
    RoleChange,
    RoleChangedUser,
    RoleHistoryPage,
    RoleUpdateRequest,
    RoleUpdateResponse,
    UnbanDetails,
    UnbanRequest,
    UnbanResponse,
    UserBanHistoryResponse,
    UserRoleHistoryResponse,
    UserSummary,
    describe_ban_duration,
)
from app.schemas.pagination import DEFAULT_PAGE_SIZE, PageParams, Pagination
from app.services.history_service import HistoryService
from app.services.moderation_service import ModerationService
from app.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.put("/users/role", response_model=RoleUpdateResponse)
def update_user_role(
    request: RoleUpdateRequest,
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
) -> RoleUpdateResponse:
    """
    Change a user's role.

    SUPER_ADMIN may assign any role except on the first SUPER_ADMIN. ADMIN may
    only move USER/EDITOR accounts between USER and EDITOR and must give a
    reason of at least 15 characters.

    Args:
        request: Target user ID, new role and reason
        admin: Current admin user
        session: Database session

    Returns:
        The updated user and the recorded role change
    """
    user, entry = ModerationService(session).update_role(
        admin, user_id=request.user_id, new_role=request.role, reason=request.reason
    )
    return RoleUpdateResponse(
        user=RoleChangedUser(
            id=user.id, username=user.username, role=user.role, updated_at=user.updated_at
        ),
        role_history=RoleChange(
            old_role=entry.old_role,
            new_role=entry.new_role,
            reason=entry.reason,
            changed_by_id=entry.changed_by_id,
            changed_at=entry.created_at,
        ),
    )


@router.post("/users/ban", response_model=BanResponse)
def ban_user(
    request: BanRequest,
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
) -> BanResponse:
    """
    Ban a user for a number of days or permanently.

    Args:
        request: Target user ID, reason and duration (``"7"`` or ``"permanent"``)
        admin: Current admin user
        session: Database session

    Returns:
        Details of the recorded ban
    """
    entry = ModerationService(session).ban(
        admin, user_id=request.user_id, reason=request.reason, duration=request.duration
    )
    target = UserService.get_or_404(session, entry.user_id)
    return BanResponse(
        ban_details=BanDetails(
            user_id=target.id,
            username=target.username,
            banned_by=admin.username,
            reason=entry.reason,
            duration=describe_ban_duration(entry.duration, entry.duration_days),
            duration_days=entry.duration_days,
            start_date=entry.start_date,
            end_date=entry.end_date,
            created_at=entry.created_at,
        )
    )


@router.post("/users/{user_id}/unban", response_model=UnbanResponse)
def unban_user(
    user_id: int,
    request: UnbanRequest,
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
) -> UnbanResponse:
    """
    Lift a user's active ban.
    Only a SUPER_ADMIN may lift a ban that a SUPER_ADMIN issued.
    """
    _, unban_entry = ModerationService(session).unban(admin, user_id=user_id, reason=request.reason)
    target = UserService.get_or_404(session, user_id)
    return UnbanResponse(
        unban_details=UnbanDetails(
            user_id=target.id,
            username=target.username,
            unbanned_by=admin.username,
            reason=unban_entry.reason,
            unbanned_at=unban_entry.unbanned_at,
        )
    )


@router.get("/users/{user_id}/role-history", response_model=UserRoleHistoryResponse)
def user_role_history(
    user_id: int,
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
) -> UserRoleHistoryResponse:
    user, histories = HistoryService(session).user_role_history(user_id)
    return UserRoleHistoryResponse(user=UserSummary.model_validate(user), histories=histories)


@router.get("/role-histories", response_model=RoleHistoryPage)
def list_role_histories(
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> RoleHistoryPage:
    """
    List all role changes, newest first.

    Args:
        admin: Current admin user
        session: Database session
        page: Page number; values below 1 are treated as 1
        limit: Page size, clamped to 1-50

    Returns:
        One page of role changes and its pagination metadata
    """
    params = PageParams.from_query(page, limit)
    histories, total = HistoryService(session).list_role_histories(params)
    return RoleHistoryPage(histories=histories, pagination=Pagination.build(params, total))


@router.get("/users/{user_id}/ban-history", response_model=UserBanHistoryResponse)
def user_ban_history(
    user_id: int,
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
) -> UserBanHistoryResponse:
    user, histories = HistoryService(session).user_ban_history(user_id)
    return UserBanHistoryResponse(user=UserSummary.model_validate(user), histories=histories)


@router.get("/ban-histories", response_model=BanHistoryPage)
def list_ban_histories(
    admin: AdminUser,
    session: Annotated[Session, Depends(get_session)],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    status: Annotated[Optional[Literal["active", "inactive"]], Query()] = None,
    duration: Annotated[Optional[Literal["permanent", "temporary"]], Query()] = None,
) -> BanHistoryPage:
    """
    List ban and unban rows, newest first.

    Args:
        admin: Current admin user
        session: Database session
        page: Page number; values below 1 are treated as 1
        limit: Page size, clamped to 1-50
        status: Only active or only inactive rows
        duration: Only permanent or only temporary bans

    Returns:
        One page of ban rows and its pagination metadata
    """
    params = PageParams.from_query(page, limit)
    histories, total = HistoryService(session).list_ban_histories(
        params, status=status, duration=duration
    )
    return BanHistoryPage(histories=histories, pagination=Pagination.build(params, total))
