"""
Authentication router.

Endpoints:
- POST /auth/register - Applicant self-registration
- POST /auth/login - Exchange credentials for JWT tokens
- GET /auth/me - The authenticated user's profile
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, get_current_user
from visa_api.core.database import get_db
from visa_api.core.errors import ConflictError, NotFoundError
from visa_api.core.rate_limit import ip_rate_limit
from visa_api.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from visa_api.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from visa_api.modules.shared import ApiResponse, ok
from visa_api.modules.users.models import User, UserRole
from visa_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_tokens(user: User) -> LoginResponse:
    additional_claims = {
        "email": user.email,
        "role": user.role.value,
        "name": user.full_name,
        "permissions": list(user.permissions or []),
    }
    return LoginResponse(
        access_token=create_access_token(
            subject=str(user.id),
            additional_claims=additional_claims,
        ),
        refresh_token=create_refresh_token(subject=str(user.id)),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ip_rate_limit("register", limit=5, window_seconds=300))],
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Create an applicant account and log it in.

    Raises:
        ConflictError: If the email is already registered
    """
    if await UserRepository.email_exists(db, data.email):
        logger.warning(f"Registration attempt for existing email: {data.email}")
        raise ConflictError("An account with this email already exists", "EMAIL_EXISTS")

    user = await UserRepository.create(
        db,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=UserRole.APPLICANT,
    )
    await db.commit()
    await db.refresh(user)

    logger.info(f"Applicant registered: {user.email}")
    return _issue_tokens(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(ip_rate_limit("login", limit=10, window_seconds=60))],
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account inactive
    """
    user = await UserRepository.get_by_email(db, credentials.email)

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login for: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_CREDENTIALS",
                "message": "Invalid email or password.",
            },
        )

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_INACTIVE",
                "message": "Your account has been deactivated.",
            },
        )

    logger.info(f"User logged in: {user.email} (role: {user.role.value})")
    return _issue_tokens(user)


@router.get("/me", response_model=ApiResponse[UserResponse])
async def me(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserRepository.get_by_id(db, current.id)
    if not user:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    return ok(UserResponse.model_validate(user), "User retrieved")
