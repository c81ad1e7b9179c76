"""
User Administration Router

All endpoints require USERS_MANAGE_USERS (admins hold every permission).

Endpoints:
- GET /users - List accounts, optionally filtered by role and status
- POST /users/officers - Create an officer account
- GET /users/{user_id} - Get one account
- PATCH /users/{user_id} - Update profile fields or reactivate
- PUT /users/{user_id}/permissions - Replace an officer's permissions
- DELETE /users/{user_id} - Deactivate an account
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, require_permission
from visa_api.core.database import get_db
from visa_api.modules.auth.schemas import UserResponse
from visa_api.modules.shared import ApiResponse, ok
from visa_api.modules.users import service
from visa_api.modules.users.models import Permission, UserRole
from visa_api.modules.users.schemas import OfficerCreate, PermissionsUpdate, UserUpdate

router = APIRouter()

require_user_admin = require_permission(Permission.USERS_MANAGE_USERS.value)


@router.get("", response_model=ApiResponse[list[UserResponse]])
async def list_users(
    role: UserRole | None = Query(None),
    is_active: bool | None = Query(None),
    admin: CurrentUser = Depends(require_user_admin),
    db: AsyncSession = Depends(get_db),
):
    users = await service.list_users(db, role=role, is_active=is_active)
    return ok([UserResponse.model_validate(u) for u in users], f"Retrieved {len(users)} users")


@router.post(
    "/officers",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_officer(
    data: OfficerCreate,
    admin: CurrentUser = Depends(require_user_admin),
    db: AsyncSession = Depends(get_db),
):
    officer = await service.create_officer(db, admin, data)
    return ok(UserResponse.model_validate(officer), "Officer created")


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: UUID,
    admin: CurrentUser = Depends(require_user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await service.get_user(db, user_id)
    return ok(UserResponse.model_validate(user), "User retrieved")


@router.patch("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    admin: CurrentUser = Depends(require_user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await service.update_user(db, admin, user_id, data)
    return ok(UserResponse.model_validate(user), "User updated")


@router.put("/{user_id}/permissions", response_model=ApiResponse[UserResponse])
async def update_officer_permissions(
    user_id: UUID,
    data: PermissionsUpdate,
    admin: CurrentUser = Depends(require_user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await service.update_officer_permissions(db, admin, user_id, data.permissions)
    return ok(UserResponse.model_validate(user), "Permissions updated")


@router.delete("/{user_id}", response_model=ApiResponse[UserResponse])
async def deactivate_user(
    user_id: UUID,
    admin: CurrentUser = Depends(require_user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await service.deactivate_user(db, admin, user_id)
    return ok(UserResponse.model_validate(user), "User deactivated")
