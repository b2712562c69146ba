"""
User service layer implementing business logic for user operations.
Separates business logic from API routes and database operations.

Lookups used for authentication and moderation skip soft-deleted users.
Uniqueness checks do not: a deleted account still owns its username and
email in the unique index.
"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.clock import utc_now
from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from app.core.logging import get_logger
from app.core.security import get_password_hash, verify_password
from app.db.session import atomic
from app.models.user import User, UserRole, UserStatus
from app.schemas.user import ProfileUpdate, UserCreate

logger = get_logger(__name__)


def _unique_conflict(error: PersistenceError) -> Optional[ConflictError]:
    """
    Translate a unique-index violation into a ConflictError.

    The up-front checks can lose a race against a concurrent insert; the
    index then rejects the write and ``atomic`` wraps the IntegrityError.
    Returns None for any other persistence failure.
    """
    cause = error.__cause__
    if not isinstance(cause, IntegrityError):
        return None
    if "email" in str(cause.orig).lower():
        return ConflictError("Email already exists")
    return ConflictError("Username already exists")


class UserService:
    """Service class for user-related operations."""

    @staticmethod
    def get_by_email(session: Session, email: str) -> Optional[User]:
        """
        Retrieve a live user by email address.

        Args:
            session: Database session
            email: Email address to search for

        Returns:
            User if found, None otherwise
        """
        statement = select(User).where(User.email == email, User.deleted_at.is_(None))
        return session.exec(statement).first()

    @staticmethod
    def get_by_username(session: Session, username: str) -> Optional[User]:
        statement = select(User).where(User.username == username, User.deleted_at.is_(None))
        return session.exec(statement).first()

    @staticmethod
    def get_by_identifier(session: Session, identifier: str) -> Optional[User]:
        """Retrieve a live user whose email or username equals ``identifier``."""
        statement = select(User).where(
            or_(User.email == identifier, User.username == identifier),
            User.deleted_at.is_(None),
        )
        return session.exec(statement).first()

    @staticmethod
    def get_by_id(session: Session, user_id: int) -> Optional[User]:
        """
        Retrieve a live user by ID.

        Args:
            session: Database session
            user_id: User ID to search for

        Returns:
            User if found and not soft-deleted, None otherwise
        """
        user = session.get(User, user_id)
        if user is None or user.is_deleted:
            return None
        return user

    @staticmethod
    def get_or_404(session: Session, user_id: int) -> User:
        user = UserService.get_by_id(session, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def email_taken(session: Session, email: str) -> bool:
        statement = select(func.count()).select_from(User).where(User.email == email)
        return session.exec(statement).one() > 0

    @staticmethod
    def username_taken(session: Session, username: str) -> bool:
        statement = select(func.count()).select_from(User).where(User.username == username)
        return session.exec(statement).one() > 0

    @staticmethod
    def create(
        session: Session,
        user_create: UserCreate,
        role: UserRole = UserRole.USER,
    ) -> User:
        """
        Create a new active user with hashed password.

        Args:
            session: Database session
            user_create: User creation data
            role: User role (defaults to USER)

        Returns:
            Created user instance

        Raises:
            ConflictError: If the email or username is already registered
        """
        if UserService.email_taken(session, user_create.email):
            raise ConflictError("Email already exists")
        if UserService.username_taken(session, user_create.username):
            raise ConflictError("Username already exists")

        now = utc_now()
        db_user = User(
            username=user_create.username,
            email=user_create.email,
            name=user_create.name,
            hashed_password=get_password_hash(user_create.password),
            role=role,
            status=UserStatus.ACTIVE,
            email_verified_at=now,
        )
        try:
            with atomic(session):
                session.add(db_user)
        except PersistenceError as e:
            conflict = _unique_conflict(e)
            if conflict is None:
                raise
            raise conflict from e
        session.refresh(db_user)
        return db_user

    @staticmethod
    def authenticate(session: Session, identifier: str, password: str) -> Optional[User]:
        """
        Check a password for the user known by email or username.

        Account status is not considered here; the request gate decides
        whether an authenticated user is admitted.

        Args:
            session: Database session
            identifier: Email or username
            password: Plain text password

        Returns:
            User if the credentials match, None otherwise
        """
        user = UserService.get_by_identifier(session, identifier)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def is_admin(user: User) -> bool:
        """
        Check if a user has admin privileges.

        Args:
            user: User to check

        Returns:
            True for ADMIN and SUPER_ADMIN, False otherwise
        """
        return user.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @staticmethod
    def update_profile(session: Session, user: User, changes: ProfileUpdate) -> User:
        """
        Apply a partial profile update.

        Raises:
            ConflictError: If a changed email or username is already in use
        """
        if changes.email is not None and changes.email != user.email:
            if UserService.email_taken(session, changes.email):
                raise ConflictError("Email already exists")
        if changes.username is not None and changes.username != user.username:
            if UserService.username_taken(session, changes.username):
                raise ConflictError("Username already exists")

        try:
            with atomic(session):
                if changes.username is not None:
                    user.username = changes.username
                if changes.email is not None:
                    user.email = changes.email
                if changes.full_name is not None:
                    user.name = changes.full_name
                if changes.bio is not None:
                    user.bio = changes.bio
                if changes.avatar_url is not None:
                    user.avatar_url = str(changes.avatar_url)
                user.updated_at = utc_now()
                session.add(user)
        except PersistenceError as e:
            conflict = _unique_conflict(e)
            if conflict is None:
                raise
            raise conflict from e
        session.refresh(user)
        logger.info(f"Profile updated for user {user.id}")
        return user

    @staticmethod
    def set_password(session: Session, user: User, new_password: str) -> None:
        with atomic(session):
            user.hashed_password = get_password_hash(new_password)
            user.updated_at = utc_now()
            session.add(user)

    @staticmethod
    def change_password(session: Session, user: User, old_password: str, new_password: str) -> None:
        """
        Replace the password after checking the current one.

        Raises:
            AuthenticationError: If ``old_password`` is wrong
        """
        if not verify_password(old_password, user.hashed_password):
            raise AuthenticationError("Invalid old password")
        UserService.set_password(session, user, new_password)
        logger.info(f"Password changed for user {user.id}")

    @staticmethod
    def soft_delete(session: Session, user: User, password: str) -> None:
        """
        Mark the account deleted after checking its password.

        The row and its history stay; tokens issued earlier stop resolving
        to a user and are rejected by the request gate.

        Raises:
            AuthenticationError: If ``password`` is wrong
        """
        if not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid password")
        with atomic(session):
            now = utc_now()
            user.deleted_at = now
            user.updated_at = now
            session.add(user)
        logger.info(f"Account soft-deleted: user {user.id}")

    @staticmethod
    def first_super_admin(session: Session) -> Optional[User]:
        """
        Return the SUPER_ADMIN with the earliest creation time.

        Re-queried on every call; ties on ``created_at`` go to the lowest id.
        """
        statement = (
            select(User)
            .where(User.role == UserRole.SUPER_ADMIN, User.deleted_at.is_(None))
            .order_by(User.created_at.asc(), User.id.asc())
        )
        return session.exec(statement).first()
