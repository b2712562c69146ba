"""
Security utilities for password hashing, access tokens and reset tokens.

Default hashing uses ``pbkdf2_sha256`` for stable cross-platform behavior in
tests and local development. ``bcrypt`` verification is still supported for
backward compatibility with existing hashes.
"""

import secrets
from datetime import timedelta
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from app.core.clock import utc_now
from app.core.config import settings
from app.models.user import User

# Prefer pbkdf2 for new hashes while still verifying legacy bcrypt hashes.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed access token for a user.

    The token embeds the user id (``sub``), username, email and role, and
    expires after ``ACCESS_TOKEN_EXPIRE_MINUTES`` unless overridden.

    Args:
        user: The user the token identifies
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT token string
    """
    now = utc_now()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
        "iat": now,
        "nbf": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry of an access token and return its claims.

    Raises:
        jose.JWTError: If the token is malformed, tampered with or expired
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using the configured default scheme.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def generate_reset_token() -> str:
    """Return a random 32-byte token, hex encoded."""
    return secrets.token_hex(32)
