"""
Tests for the user service layer.
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.core.clock import utc_now
from app.core.exceptions import AuthenticationError, ConflictError, PersistenceError
from app.core.security import verify_password
from app.models.user import User, UserRole, UserStatus
from app.schemas.user import ProfileUpdate, UserCreate
from app.services.moderation_service import ModerationService
from app.services.user_service import UserService

TEST_PASSWORD = "testpassword123"


def test_create_user(session: Session) -> None:
    """Test user creation."""
    user_create = UserCreate(
        username="service_user",
        email="service@example.com",
        password="password123",
        name="Service Test User",
    )
    user = UserService.create(session, user_create)

    assert user.id is not None
    assert user.email == "service@example.com"
    assert user.name == "Service Test User"
    assert user.role == UserRole.USER
    assert user.status == UserStatus.ACTIVE
    assert user.email_verified_at is not None
    assert user.hashed_password != "password123"


def test_deleted_user_keeps_email_reserved(session: Session, test_user: User) -> None:
    UserService.soft_delete(session, test_user, TEST_PASSWORD)

    with pytest.raises(ConflictError, match="Email already exists"):
        UserService.create(
            session,
            UserCreate(username="newcomer", email=test_user.email, password="password123"),
        )


def test_get_user_by_email(session: Session, test_user: User) -> None:
    """Test retrieving user by email."""
    user = UserService.get_by_email(session, test_user.email)
    assert user is not None
    assert user.id == test_user.id


def test_get_user_by_id_skips_deleted(session: Session, test_user: User) -> None:
    test_user.deleted_at = utc_now()
    session.add(test_user)
    session.commit()

    assert UserService.get_by_id(session, test_user.id) is None  # type: ignore[arg-type]


def test_authenticate_by_username_or_email(session: Session, test_user: User) -> None:
    """Test successful user authentication."""
    by_email = UserService.authenticate(session, test_user.email, TEST_PASSWORD)
    by_username = UserService.authenticate(session, test_user.username, TEST_PASSWORD)
    assert by_email is not None and by_email.id == test_user.id
    assert by_username is not None and by_username.id == test_user.id


def test_authenticate_user_wrong_password(session: Session, test_user: User) -> None:
    """Test authentication with wrong password."""
    assert UserService.authenticate(session, test_user.email, "wrongpassword") is None


def test_authenticate_nonexistent_user(session: Session) -> None:
    """Test authentication with non-existent user."""
    assert UserService.authenticate(session, "nobody@example.com", "password") is None


def test_update_profile_partial(session: Session, test_user: User) -> None:
    user = UserService.update_profile(session, test_user, ProfileUpdate(bio="Hello"))
    assert user.bio == "Hello"
    assert user.username == "test_user"


def test_update_profile_email_conflict(
    session: Session, test_user: User, other_user: User
) -> None:
    with pytest.raises(ConflictError):
        UserService.update_profile(session, test_user, ProfileUpdate(email=other_user.email))


def test_change_password(session: Session, test_user: User) -> None:
    UserService.change_password(session, test_user, TEST_PASSWORD, "another-secret")
    assert verify_password("another-secret", test_user.hashed_password)

    with pytest.raises(AuthenticationError):
        UserService.change_password(session, test_user, TEST_PASSWORD, "third-secret")


def test_first_super_admin_is_oldest(
    session: Session, super_admin: User, second_super_admin: User
) -> None:
    first = UserService.first_super_admin(session)
    assert first is not None
    assert first.id == super_admin.id


def test_first_super_admin_none_without_super_admins(session: Session) -> None:
    assert UserService.first_super_admin(session) is None
    assert ModerationService(session).first_super_admin() is None


def test_first_super_admin_skips_soft_deleted(
    session: Session, super_admin: User, second_super_admin: User
) -> None:
    super_admin.deleted_at = utc_now()
    session.add(super_admin)
    session.commit()

    first = ModerationService(session).first_super_admin()
    assert first is not None
    assert first.id == second_super_admin.id


def _skip_uniqueness_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    # Simulates losing the race against a concurrent insert.
    monkeypatch.setattr(UserService, "email_taken", staticmethod(lambda session, email: False))
    monkeypatch.setattr(
        UserService, "username_taken", staticmethod(lambda session, username: False)
    )


def test_create_duplicate_email_hits_unique_index(
    session: Session, test_user: User, monkeypatch: pytest.MonkeyPatch
) -> None:
    _skip_uniqueness_checks(monkeypatch)

    with pytest.raises(ConflictError, match="Email already exists"):
        UserService.create(
            session,
            UserCreate(username="newcomer", email=test_user.email, password="password123"),
        )


def test_create_duplicate_username_hits_unique_index(
    session: Session, test_user: User, monkeypatch: pytest.MonkeyPatch
) -> None:
    _skip_uniqueness_checks(monkeypatch)

    with pytest.raises(ConflictError, match="Username already exists"):
        UserService.create(
            session,
            UserCreate(
                username=test_user.username,
                email="newcomer@example.com",
                password="password123",
            ),
        )


def test_update_profile_duplicate_hits_unique_index(
    session: Session, test_user: User, other_user: User, monkeypatch: pytest.MonkeyPatch
) -> None:
    _skip_uniqueness_checks(monkeypatch)

    with pytest.raises(ConflictError, match="Email already exists"):
        UserService.update_profile(session, test_user, ProfileUpdate(email=other_user.email))

    session.refresh(test_user)
    assert test_user.email != other_user.email


def test_create_other_database_error_is_not_a_conflict(
    session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_commit() -> None:
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        UserService.create(
            session,
            UserCreate(username="newcomer", email="newcomer@example.com", password="password123"),
        )
