"""Authentication module."""

from visa_api.modules.auth.router import router
from visa_api.modules.auth.schemas import LoginRequest, LoginResponse, RegisterRequest

__all__ = ["router", "LoginRequest", "LoginResponse", "RegisterRequest"]
