"""
Tests for the JSON error envelope.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from visa_api.core.auth import require_admin
from visa_api.core.errors import ConflictError, NotFoundError, register_exception_handlers


class Payload(BaseModel):
    name: str


@pytest.fixture
def client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Application not found", "APPLICATION_NOT_FOUND")

    @app.get("/conflict")
    async def conflict():
        raise ConflictError("Email taken")

    @app.get("/integrity")
    async def integrity():
        raise IntegrityError("INSERT", {}, Exception("duplicate key"))

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    @app.get("/admin", dependencies=[Depends(require_admin)])
    async def admin_only():
        return {"ok": True}

    return TestClient(app, raise_server_exceptions=False)


class TestErrorEnvelope:
    def test_service_error(self, client):
        response = client.get("/missing")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "status": 404,
            "code": "APPLICATION_NOT_FOUND",
            "message": "Application not found",
        }

    def test_default_error_code(self, client):
        response = client.get("/conflict")
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_integrity_error_is_conflict(self, client):
        response = client.get("/integrity")
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_validation_error(self, client):
        response = client.post("/validate", json={})
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["message"].startswith("name")

    def test_missing_token(self, client):
        response = client.get("/admin")
        assert response.status_code == 401
        assert response.json()["code"] == "NOT_AUTHENTICATED"

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_unhandled_error(self, client):
        response = client.get("/boom")
        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
