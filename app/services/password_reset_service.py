"""
Password reset flow: issue a single-use token by email, then redeem it.
"""

from datetime import timedelta

from sqlmodel import Session, select

from app.core.clock import utc_now
from app.core.config import settings
from app.core.exceptions import NotFoundError, NotificationError, ValidationError
from app.core.logging import get_logger
from app.core.security import generate_reset_token, get_password_hash
from app.db.session import atomic
from app.models.token import PasswordResetToken
from app.services.notification_service import NotificationService
from app.services.user_service import UserService

logger = get_logger(__name__)

RESET_REQUESTED_MESSAGE = "If your email is registered, you will receive a password reset link"


class PasswordResetService:
    """Service class for password resets."""

    @staticmethod
    def request_reset(session: Session, email: str) -> str:
        """
        Issue a reset token for ``email`` and queue the email carrying it.

        The returned message is the same whether or not the address is
        registered or the email could be queued. A token whose email could
        not be queued is deleted again.

        Returns:
            The message to show the caller
        """
        user = UserService.get_by_email(session, email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return RESET_REQUESTED_MESSAGE

        reset_token = PasswordResetToken(
            token=generate_reset_token(),
            email=user.email,
            expires_at=utc_now() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        )
        with atomic(session):
            session.add(reset_token)

        try:
            NotificationService.send_password_reset(user.email, reset_token.token)
        except NotificationError:
            with atomic(session):
                session.delete(reset_token)
            logger.error(f"Reset token for user {user.id} discarded: email not queued")
            return RESET_REQUESTED_MESSAGE

        logger.info(f"Password reset email queued for user {user.id}")
        return RESET_REQUESTED_MESSAGE

    @staticmethod
    def reset_password(session: Session, token: str, new_password: str) -> None:
        """
        Redeem a reset token and set a new password.

        Raises:
            ValidationError: If the token is unknown or expired
            NotFoundError: If the token's account no longer exists
        """
        statement = select(PasswordResetToken).where(
            PasswordResetToken.token == token,
            PasswordResetToken.expires_at > utc_now(),
        )
        reset_token = session.exec(statement).first()
        if reset_token is None:
            raise ValidationError("Invalid or expired reset token")

        user = UserService.get_by_email(session, reset_token.email)
        if user is None:
            raise NotFoundError("User not found")

        with atomic(session):
            user.hashed_password = get_password_hash(new_password)
            user.updated_at = utc_now()
            session.add(user)
            session.delete(reset_token)
        logger.info(f"Password reset completed for user {user.id}")
