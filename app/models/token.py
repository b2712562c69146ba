"""
Password reset token model.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utc_now


class PasswordResetToken(SQLModel, table=True):
    """Single-use reset token, deleted once consumed."""

    __tablename__ = "password_reset_tokens"  # type: ignore

    token: str = Field(primary_key=True, max_length=64)
    email: str = Field(index=True, max_length=255)
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)
