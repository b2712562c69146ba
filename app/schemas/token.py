"""
Token schemas for JWT authentication and password resets.
"""

from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole
from app.schemas.user import UserResponse


class Token(BaseModel):
    """Schema for access token response."""

    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    """Token plus the authenticated user, returned by login and register."""

    user: UserResponse


class TokenPayload(BaseModel):
    """Schema for decoded JWT payload."""

    sub: int
    username: str
    email: str
    role: UserRole


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordUpdateRequest(BaseModel):
    """Completes a reset using the emailed token."""

    reset_token: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=72)


class PasswordChangeRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=6, max_length=72)
