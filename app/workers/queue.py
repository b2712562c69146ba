"""
RQ queue configuration and utilities.
Provides the Redis connection and queue used for outgoing mail.
"""

from typing import Any, Callable

from redis import Redis
from rq import Queue

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Redis connection for RQ. Connecting is lazy, so importing this module
# does not require a running Redis.
redis_conn = Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
)

# Default queue for background tasks
default_queue = Queue("default", connection=redis_conn)


def enqueue_task(func: Callable[..., Any], *args: Any, **kwargs: Any) -> str:
    """
    Enqueue a background task.
    Jobs are not retried; a failed job stays in RQ's failed registry.

    Args:
        func: Function to execute
        *args: Positional arguments for the function
        **kwargs: Keyword arguments for the function

    Returns:
        Job ID
    """
    job = default_queue.enqueue(func, *args, **kwargs)
    logger.info(f"Enqueued task {func.__name__} with job ID: {job.id}")
    return job.id
