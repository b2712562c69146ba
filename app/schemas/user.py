"""
User schemas for API request/response validation.
Separates internal models from API contracts using Pydantic.
"""

from datetime import datetime
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, EmailStr, Field

from app.models.user import UserRole, UserStatus


class UserBase(BaseModel):
    """Base user schema with common fields."""

    username: str = Field(min_length=3, max_length=255)
    email: EmailStr


class UserCreate(UserBase):
    """Schema for user registration."""

    password: str = Field(min_length=6, max_length=72)
    name: Optional[str] = Field(default=None, max_length=100)


class UserLogin(BaseModel):
    """Schema for user login. ``identifier`` is an email or a username."""

    identifier: str = Field(min_length=3)
    password: str = Field(min_length=6)


class UserResponse(BaseModel):
    """
    Schema for user data in API responses.
    Excludes sensitive information like hashed_password.
    """

    id: int
    username: str
    email: str
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole
    status: UserStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    username: Optional[str] = Field(default=None, min_length=3, max_length=255)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[AnyHttpUrl] = None


class StatusUpdateRequest(BaseModel):
    user_id: int
    status: UserStatus


class StatusUpdateResponse(BaseModel):
    message: str = "User status updated successfully"
    user: UserResponse


class DeleteAccountRequest(BaseModel):
    password: str


class MessageResponse(BaseModel):
    message: str
