"""
Schemas for moderation requests and ledger responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.history import (
    BAN_DURATION_PERMANENT,
    BAN_DURATION_UNBAN,
    MAX_FREEZE_DAYS,
    MIN_FREEZE_DAYS,
    MIN_REASON_LENGTH,
)
from app.models.user import UserRole, UserStatus
from app.schemas.pagination import Pagination


class RoleUpdateRequest(BaseModel):
    user_id: int
    role: UserRole
    reason: Optional[str] = None


class BanRequest(BaseModel):
    """``duration`` is ``"permanent"`` or a positive number of days."""

    user_id: int
    reason: str = Field(min_length=MIN_REASON_LENGTH)
    duration: str = Field(min_length=1, max_length=20)


class UnbanRequest(BaseModel):
    reason: str = Field(min_length=MIN_REASON_LENGTH)


class FreezeRequest(BaseModel):
    duration: int = Field(ge=MIN_FREEZE_DAYS, le=MAX_FREEZE_DAYS, description="Days")
    reason: str = Field(min_length=1, max_length=500)


class UserSummary(BaseModel):
    id: int
    username: str
    role: UserRole
    status: UserStatus

    model_config = {"from_attributes": True}


class RoleHistoryResponse(BaseModel):
    id: int
    user_id: int
    username: str
    changed_by_id: int
    changed_by: str
    old_role: UserRole
    new_role: UserRole
    reason: str
    created_at: datetime


class BanHistoryResponse(BaseModel):
    id: int
    user_id: int
    username: str
    banned_by_id: int
    banned_by: str
    reason: str
    duration: str
    duration_days: Optional[int] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool
    unbanned_at: Optional[datetime] = None
    unbanned_by: Optional[str] = None
    created_at: datetime


def describe_ban_duration(duration: str, duration_days: Optional[int]) -> str:
    """Human readable duration: ``"7 days"``, ``"permanent"`` or ``"unban"``."""
    if duration in (BAN_DURATION_PERMANENT, BAN_DURATION_UNBAN):
        return duration
    if duration_days == 1:
        return "1 day"
    return f"{duration_days} days"


class FreezeHistoryResponse(BaseModel):
    id: int
    user_id: int
    reason: str
    duration_days: int
    start_date: datetime
    end_date: datetime
    is_active: bool
    unfrozen_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserRoleHistoryResponse(BaseModel):
    user: UserSummary
    histories: List[RoleHistoryResponse]


class UserBanHistoryResponse(BaseModel):
    user: UserSummary
    histories: List[BanHistoryResponse]


class RoleHistoryPage(BaseModel):
    histories: List[RoleHistoryResponse]
    pagination: Pagination


class BanHistoryPage(BaseModel):
    histories: List[BanHistoryResponse]
    pagination: Pagination


class FreezeHistoryListResponse(BaseModel):
    histories: List[FreezeHistoryResponse]


class RoleChangedUser(BaseModel):
    id: int
    username: str
    role: UserRole
    updated_at: datetime


class RoleChange(BaseModel):
    old_role: UserRole
    new_role: UserRole
    reason: str
    changed_by_id: int
    changed_at: datetime


class RoleUpdateResponse(BaseModel):
    message: str = "Role updated successfully"
    user: RoleChangedUser
    role_history: RoleChange


class BanDetails(BaseModel):
    user_id: int
    username: str
    banned_by: str
    reason: str
    duration: str
    duration_days: Optional[int] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    created_at: datetime


class BanResponse(BaseModel):
    message: str = "User banned successfully"
    ban_details: BanDetails


class UnbanDetails(BaseModel):
    user_id: int
    username: str
    unbanned_by: str
    reason: str
    unbanned_at: datetime


class UnbanResponse(BaseModel):
    message: str = "User unbanned successfully"
    unban_details: UnbanDetails


class FreezeResponse(BaseModel):
    message: str = "Account frozen successfully"
    freeze: FreezeHistoryResponse
