"""
Pytest configuration and fixtures.
Provides test database, client, users for every role and auth headers.
"""

import os

# Settings are read at import time; these must be in place before app imports.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-account-service")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DISABLE_BOOTSTRAP_USERS", "true")

from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.core.security import create_access_token
from app.db.session import get_session
from app.main import app
from app.models.user import User, UserRole
from app.schemas.user import UserCreate
from app.services.user_service import UserService

TEST_PASSWORD = "testpassword123"


@pytest.fixture(name="session")
def session_fixture() -> Generator[Session, None, None]:
    """
    Create a test database session.
    Uses an in-memory SQLite database for fast tests.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with dependency overrides.
    """

    def get_session_override() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(session: Session, username: str, role: UserRole = UserRole.USER) -> User:
    user_create = UserCreate(
        username=username,
        email=f"{username}@example.com",
        password=TEST_PASSWORD,
        name=username.replace("_", " ").title(),
    )
    return UserService.create(session, user_create, role=role)


@pytest.fixture(name="super_admin")
def super_admin_fixture(session: Session) -> User:
    """The first SUPER_ADMIN. Every other role fixture is created after it."""
    return make_user(session, "root_admin", role=UserRole.SUPER_ADMIN)


@pytest.fixture(name="second_super_admin")
def second_super_admin_fixture(session: Session, super_admin: User) -> User:
    return make_user(session, "deputy_root", role=UserRole.SUPER_ADMIN)


@pytest.fixture(name="admin")
def admin_fixture(session: Session, super_admin: User) -> User:
    return make_user(session, "moderator", role=UserRole.ADMIN)


@pytest.fixture(name="other_admin")
def other_admin_fixture(session: Session, admin: User) -> User:
    return make_user(session, "moderator_two", role=UserRole.ADMIN)


@pytest.fixture(name="editor")
def editor_fixture(session: Session, super_admin: User) -> User:
    return make_user(session, "copy_editor", role=UserRole.EDITOR)


@pytest.fixture(name="test_user")
def test_user_fixture(session: Session, super_admin: User) -> User:
    """
    Create a test user.
    """
    return make_user(session, "test_user")


@pytest.fixture(name="other_user")
def other_user_fixture(session: Session, test_user: User) -> User:
    return make_user(session, "other_user")


@pytest.fixture(name="auth_headers")
def auth_headers_fixture() -> Callable[[User], Dict[str, str]]:
    """
    Build bearer headers for a user.
    """

    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
