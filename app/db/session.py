"""
Database session management using SQLModel.
Provides the engine, the FastAPI session dependency and the transaction
boundary used by every mutating service call.
"""

from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from app.core.config import Settings, settings
from app.core.exceptions import PersistenceError
from app.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(config: Settings) -> Engine:
    """
    Create the process-wide engine for the configured database.

    PostgreSQL gets a bounded pool with a fixed connection lifetime;
    SQLite gets the thread check disabled so FastAPI's worker threads can
    share it.
    """
    if config.is_sqlite:
        return create_engine(
            config.SQLALCHEMY_DATABASE_URI,
            echo=config.DEBUG,
            connect_args={"check_same_thread": False},
        )

    # pool_pre_ping ensures connections are alive before using them
    return create_engine(
        config.SQLALCHEMY_DATABASE_URI,
        echo=config.DEBUG,
        pool_pre_ping=True,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_recycle=config.DB_POOL_RECYCLE_SECONDS,
    )


engine = build_engine(settings)


def get_session() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session for FastAPI routes.
    One session per request; nothing is shared between requests.

    Yields:
        Database session instance
    """
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Run a block of writes as one transaction.

    Commits when the block exits normally. On any exception the session is
    rolled back so neither the state change nor its ledger row survives;
    database failures are re-raised as ``PersistenceError``.
    """
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Transaction rolled back: {e.__class__.__name__}")
        raise PersistenceError("Database error") from e
    except Exception:
        session.rollback()
        raise
