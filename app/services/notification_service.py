"""
Notification sender: hands outgoing emails to the RQ worker.
"""

from redis.exceptions import RedisError

from app.core.exceptions import NotificationError
from app.core.logging import get_logger
from app.workers.queue import enqueue_task
from app.workers.tasks import send_password_reset_email_task

logger = get_logger(__name__)


class NotificationService:
    """Service class for outgoing notifications."""

    @staticmethod
    def send_password_reset(email: str, token: str) -> str:
        """
        Queue delivery of a password reset email.

        Args:
            email: Recipient address
            token: Reset token to deliver

        Returns:
            RQ job ID

        Raises:
            NotificationError: If the job could not be queued
        """
        try:
            return enqueue_task(send_password_reset_email_task, to=email, token=token)
        except RedisError as e:
            logger.error(f"Failed to queue reset email for {email}: {e}")
            raise NotificationError("Failed to send reset email") from e
