"""
Tests for the authentication endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from visa_api.core import rate_limit
from visa_api.core.database import get_db
from visa_api.core.security import hash_password
from visa_api.main import app
from visa_api.modules.users.models import UserRole

ROUTER = "visa_api.modules.auth.router"


@pytest.fixture
def client(mock_db):
    async def override_get_db():
        yield mock_db

    rate_limit._memory_store.clear()
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stored_user(make_user):
    user = make_user(email="ama@test.com", name="Ama Mensah")
    user.password_hash = hash_password("correct-horse")
    user.role = UserRole.APPLICANT
    user.permissions = []
    return user


class TestRegister:
    def test_duplicate_email_conflicts(self, client):
        with patch(f"{ROUTER}.UserRepository") as mock_users:
            mock_users.email_exists = AsyncMock(return_value=True)

            response = client.post(
                "/api/v1/auth/register",
                json={
                    "email": "ama@test.com",
                    "password": "correct-horse",
                    "first_name": "Ama",
                    "last_name": "Mensah",
                },
            )

        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_EXISTS"

    def test_short_password_is_invalid(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": "ama@test.com",
                "password": "short",
                "first_name": "Ama",
                "last_name": "Mensah",
            },
        )
        assert response.status_code == 422


class TestLogin:
    def test_wrong_password(self, client, stored_user):
        with patch(f"{ROUTER}.UserRepository") as mock_users:
            mock_users.get_by_email = AsyncMock(return_value=stored_user)

            response = client.post(
                "/api/v1/auth/login",
                json={"email": "ama@test.com", "password": "wrong-password"},
            )

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_inactive_account(self, client, stored_user):
        stored_user.is_active = False
        with patch(f"{ROUTER}.UserRepository") as mock_users:
            mock_users.get_by_email = AsyncMock(return_value=stored_user)

            response = client.post(
                "/api/v1/auth/login",
                json={"email": "ama@test.com", "password": "correct-horse"},
            )

        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_INACTIVE"

    def test_me_requires_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
