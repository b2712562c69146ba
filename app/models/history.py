"""
Audit ledger tables for role changes, bans and freezes.

Rows reference their subject and actor users but are never cascade-deleted
with them. Role rows are immutable. A ban row is immutable except for the
fields that close it on unban. A freeze row is immutable except for the
fields that close it when the freeze ends.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from app.core.clock import utc_now
from app.models.user import UserRole

BAN_DURATION_PERMANENT = "permanent"
BAN_DURATION_UNBAN = "unban"

MIN_REASON_LENGTH = 15
MAX_BAN_DAYS = 36500
MIN_FREEZE_DAYS = 1
MAX_FREEZE_DAYS = 365


class RoleHistory(SQLModel, table=True):
    """One role transition, recorded with the role held just before it."""

    __tablename__ = "role_histories"  # type: ignore

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    changed_by_id: int = Field(foreign_key="users.id", index=True)
    old_role: UserRole
    new_role: UserRole
    reason: str = Field(default="")
    created_at: datetime = Field(default_factory=utc_now, index=True)


class BanHistory(SQLModel, table=True):
    """
    Ban ledger row.

    ``duration`` holds the kind of row: a day count such as ``"7"``,
    ``"permanent"``, or ``"unban"`` for the row appended when a ban is lifted.
    ``end_date`` and ``duration_days`` are null for permanent bans. At most
    one row per user is active.
    """

    __tablename__ = "ban_histories"  # type: ignore

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    banned_by_id: int = Field(foreign_key="users.id", index=True)
    reason: str
    duration: str = Field(max_length=20)
    duration_days: Optional[int] = Field(default=None)
    start_date: datetime
    end_date: Optional[datetime] = Field(default=None)
    is_active: bool = Field(default=True, index=True)
    unbanned_at: Optional[datetime] = Field(default=None)
    unbanned_by_id: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)

    @property
    def is_permanent(self) -> bool:
        return self.duration == BAN_DURATION_PERMANENT


class FreezeHistory(SQLModel, table=True):
    """Self-service suspension. ``end_date`` is ``start_date + duration_days``."""

    __tablename__ = "freeze_histories"  # type: ignore

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    reason: str
    duration_days: int
    start_date: datetime
    end_date: datetime
    is_active: bool = Field(default=True, index=True)
    unfrozen_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
