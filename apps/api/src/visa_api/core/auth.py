"""
Authentication and Authorization Module

FastAPI dependencies that turn a bearer token into a CurrentUser and gate
endpoints on role or permission. Token mechanics live in security.py.

Admins implicitly hold every permission.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from visa_api.core.security import decode_token
from visa_api.modules.users.models import UserRole

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@dataclass
class CurrentUser:
    """
    The authenticated caller, populated from JWT claims.

    Attributes:
        id: User's unique identifier
        email: User's email address
        role: One of APPLICANT, OFFICER, ADMIN
        permissions: Permission strings granted to the user
        name: Display name (optional)
    """

    id: UUID
    email: str
    role: UserRole
    permissions: frozenset[str] = field(default_factory=frozenset)
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Officers and admins."""
        return self.role in (UserRole.OFFICER, UserRole.ADMIN)

    def has_permission(self, permission: str) -> bool:
        return self.is_admin or permission in self.permissions

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, email={self.email}, role={self.role.value})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str) -> CurrentUser:
    """
    Validate a JWT and extract the caller.

    Raises:
        HTTPException 401: If the token is invalid, expired or malformed
    """
    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return CurrentUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=UserRole(payload.get("role", "")),
            permissions=frozenset(payload.get("permissions") or ()),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency that validates the bearer token.

    Usage:
        @router.get("/me")
        async def me(user: CurrentUser = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If the token is missing, invalid, or expired
    """
    if credentials is None:
        raise _unauthorized("NOT_AUTHENTICATED", "Authentication credentials were not provided.")

    user = _user_from_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id} ({user.role.value})")
    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory restricting an endpoint to the given roles.

    Raises:
        HTTPException 403: If the caller's role is not allowed
    """

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            logger.warning(
                f"Access denied: user {user.id} has role '{user.role.value}', "
                f"requires one of {[r.value for r in roles]}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "INSUFFICIENT_ROLE",
                    "message": "You do not have access to this resource.",
                },
            )
        return user

    return dependency


def require_permission(permission: str) -> Callable:
    """
    Dependency factory requiring a permission string.

    Raises:
        HTTPException 403: If the caller lacks the permission
    """

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_permission(permission):
            logger.warning(f"Access denied: user {user.id} lacks permission {permission}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "PERMISSION_DENIED",
                    "message": f"Missing required permission: {permission}",
                },
            )
        return user

    return dependency


require_staff = require_roles(UserRole.OFFICER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)


__all__ = [
    "CurrentUser",
    "get_current_user",
    "require_admin",
    "require_permission",
    "require_roles",
    "require_staff",
]
