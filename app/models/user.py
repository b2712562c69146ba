"""
User model with role and status axes.
Role decides what a user may do to others; status decides whether the
account may be used at all. The two are independent: a banned user keeps
its role.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from app.core.clock import utc_now


class UserRole(str, Enum):
    """User role enumeration for RBAC."""

    USER = "USER"
    EDITOR = "EDITOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class UserStatus(str, Enum):
    """Account status enumeration."""

    ACTIVE = "active"
    PASSIVE = "passive"
    FROZEN = "frozen"
    BANNED = "banned"


class User(SQLModel, table=True):
    """
    User model with authentication, role and status.

    Attributes:
        id: Primary key
        username: Unique login name
        email: Unique email address (also accepted for login)
        name: Optional display name
        hashed_password: Password hash (pbkdf2 or legacy bcrypt)
        bio: Optional profile text
        avatar_url: Optional profile image URL
        role: One of USER, EDITOR, ADMIN, SUPER_ADMIN
        status: One of active, passive, frozen, banned
        email_verified_at: When the address was confirmed
        created_at: Timestamp of account creation
        updated_at: Timestamp of last update
        deleted_at: Soft-delete marker; set rows are never hard-deleted
    """

    __tablename__ = "users"  # type: ignore

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=255)
    email: str = Field(unique=True, index=True, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)
    hashed_password: str
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[str] = Field(default=None)
    role: UserRole = Field(default=UserRole.USER)
    status: UserStatus = Field(default=UserStatus.ACTIVE)
    email_verified_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
