"""
Tests for authentication endpoints.
"""

from typing import Callable, Dict

from fastapi.testclient import TestClient
from sqlmodel import Session

from app.core.config import settings
from app.core.security import decode_access_token
from app.models.user import User, UserRole, UserStatus
from app.services.moderation_service import ModerationService
from app.services.user_service import UserService

AUTH = f"{settings.API_V1_PREFIX}/auth"
TEST_PASSWORD = "testpassword123"


def test_register_user(client: TestClient) -> None:
    """Test user registration."""
    response = client.post(
        f"{AUTH}/register",
        json={
            "username": "newuser",
            "email": "newuser@example.com",
            "password": "newpassword123",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "newuser@example.com"
    assert data["user"]["role"] == "USER"
    assert data["user"]["status"] == "active"
    assert "hashed_password" not in data["user"]

    claims = decode_access_token(data["access_token"])
    assert claims["sub"] == str(data["user"]["id"])
    assert claims["username"] == "newuser"
    assert claims["role"] == "USER"


def test_register_duplicate_email(client: TestClient, test_user: User) -> None:
    response = client.post(
        f"{AUTH}/register",
        json={"username": "someone_else", "email": test_user.email, "password": "password123"},
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already exists"


def test_register_duplicate_username(client: TestClient, test_user: User) -> None:
    response = client.post(
        f"{AUTH}/register",
        json={
            "username": test_user.username,
            "email": "fresh@example.com",
            "password": "password123",
        },
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Username already exists"


def test_register_validation(client: TestClient) -> None:
    response = client.post(
        f"{AUTH}/register",
        json={"username": "ab", "email": "not-an-email", "password": "123"},
    )
    assert response.status_code == 422


def test_login_with_email(client: TestClient, test_user: User) -> None:
    """Test successful login."""
    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["user"]["id"] == test_user.id


def test_login_with_username(client: TestClient, test_user: User) -> None:
    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.username, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200


def test_login_wrong_password(client: TestClient, test_user: User) -> None:
    """Test login with wrong password."""
    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.email, "password": "wrongpassword"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_unknown_user(client: TestClient) -> None:
    response = client.post(
        f"{AUTH}/login",
        json={"identifier": "nobody@example.com", "password": "whatever123"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_banned(client: TestClient, session: Session, admin: User, test_user: User) -> None:
    ModerationService(session).ban(
        admin, test_user.id, "Repeated violations of the rules", "permanent"
    )

    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.username, "password": TEST_PASSWORD},
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Account is banned"


def test_login_frozen(client: TestClient, session: Session, test_user: User) -> None:
    ModerationService(session).freeze(test_user, 5, "offline for a while")

    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.username, "password": TEST_PASSWORD},
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Account is frozen"


def test_login_passive(client: TestClient, session: Session, test_user: User) -> None:
    ModerationService(session).update_status(test_user, test_user.id, UserStatus.PASSIVE)

    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.username, "password": TEST_PASSWORD},
    )
    assert response.status_code == 403
    assert "passive" in response.json()["detail"]


def test_login_soft_deleted(client: TestClient, session: Session, test_user: User) -> None:
    UserService.soft_delete(session, test_user, TEST_PASSWORD)

    response = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.username, "password": TEST_PASSWORD},
    )
    assert response.status_code == 401


def test_token_carries_role(client: TestClient, super_admin: User) -> None:
    response = client.post(
        f"{AUTH}/login",
        json={"identifier": super_admin.username, "password": TEST_PASSWORD},
    )
    claims = decode_access_token(response.json()["access_token"])
    assert claims["role"] == UserRole.SUPER_ADMIN.value
    assert claims["email"] == super_admin.email


def test_change_password(
    client: TestClient, test_user: User, auth_headers: Callable[[User], Dict[str, str]]
) -> None:
    response = client.post(
        f"{AUTH}/change-password",
        json={"old_password": TEST_PASSWORD, "new_password": "brandnew456"},
        headers=auth_headers(test_user),
    )
    assert response.status_code == 200

    login = client.post(
        f"{AUTH}/login",
        json={"identifier": test_user.username, "password": "brandnew456"},
    )
    assert login.status_code == 200


def test_change_password_wrong_old(
    client: TestClient, test_user: User, auth_headers: Callable[[User], Dict[str, str]]
) -> None:
    response = client.post(
        f"{AUTH}/change-password",
        json={"old_password": "notmypassword", "new_password": "brandnew456"},
        headers=auth_headers(test_user),
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid old password"
