"""Pydantic schemas for request/response validation."""

from app.schemas.token import AuthResponse, Token, TokenPayload
from app.schemas.user import UserCreate, UserLogin, UserResponse

__all__ = ["AuthResponse", "Token", "TokenPayload", "UserCreate", "UserLogin", "UserResponse"]
