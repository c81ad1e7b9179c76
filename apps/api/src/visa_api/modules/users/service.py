"""
User Administration Service

Admin-only management of staff accounts: creating officers, editing
profiles, granting officer permissions and deactivating accounts.
Applicants register themselves through the auth module.

USERS_MANAGE_USERS is never granted to officers; it stays with admins.
Deactivation is a soft delete: the row and its history are kept and the
account can no longer log in or be auto-assigned applications.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.errors import BadRequestError, ConflictError, NotFoundError
from visa_api.core.security import hash_password
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.users.models import (
    OFFICER_DEFAULT_PERMISSIONS,
    Permission,
    User,
    UserRole,
)
from visa_api.modules.users.repository import UserRepository
from visa_api.modules.users.schemas import OfficerCreate, UserUpdate

logger = logging.getLogger(__name__)

ADMIN_ONLY_PERMISSIONS = frozenset({Permission.USERS_MANAGE_USERS.value})


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: UUID):
        super().__init__(f"User {user_id} not found", "USER_NOT_FOUND")


def _officer_permissions(permissions: list[Permission]) -> list[str]:
    values = list(dict.fromkeys(p.value for p in permissions))
    reserved = ADMIN_ONLY_PERMISSIONS.intersection(values)
    if reserved:
        raise BadRequestError(
            f"Permissions reserved for administrators: {', '.join(sorted(reserved))}",
            "INVALID_PERMISSIONS",
        )
    return values


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await UserRepository.get_by_id(db, user_id)
    if not user:
        raise UserNotFoundError(user_id)
    return user


async def list_users(
    db: AsyncSession,
    role: UserRole | None = None,
    is_active: bool | None = None,
) -> list[User]:
    return await UserRepository.list_users(db, role=role, is_active=is_active)


async def create_officer(db: AsyncSession, admin: CurrentUser, data: OfficerCreate) -> User:
    """
    Create an officer account.

    Officers get the default officer permission set unless the request
    names one explicitly.

    Raises:
        ConflictError: If the email is already registered
        BadRequestError: If an admin-only permission is requested
    """
    if await UserRepository.email_exists(db, data.email):
        raise ConflictError("An account with this email already exists", "EMAIL_EXISTS")

    permissions = (
        _officer_permissions(data.permissions)
        if data.permissions is not None
        else list(OFFICER_DEFAULT_PERMISSIONS)
    )
    officer = await UserRepository.create(
        db,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        department=data.department,
        title=data.title,
        role=UserRole.OFFICER,
        permissions=permissions,
    )
    audit(
        db,
        action="OFFICER_CREATED",
        entity_type=AuditEntityType.USER,
        entity_id=officer.id,
        user_id=admin.id,
        user_role=admin.role.value,
        details={"email": officer.email, "permissions": permissions},
    )
    await db.commit()
    await db.refresh(officer)

    logger.info(f"Admin {admin.id} created officer {officer.id} ({officer.email})")
    return officer


async def update_user(
    db: AsyncSession,
    admin: CurrentUser,
    user_id: UUID,
    data: UserUpdate,
) -> User:
    user = await get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("is_active") is False and user.id == admin.id:
        raise BadRequestError("You cannot deactivate your own account", "CANNOT_DEACTIVATE_SELF")

    for field, value in changes.items():
        setattr(user, field, value)

    audit(
        db,
        action="USER_UPDATED",
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        user_id=admin.id,
        user_role=admin.role.value,
        details={"fields": sorted(changes)},
    )
    await db.commit()
    await db.refresh(user)
    return user


async def update_officer_permissions(
    db: AsyncSession,
    admin: CurrentUser,
    user_id: UUID,
    permissions: list[Permission],
) -> User:
    """
    Replace an officer's permission list.

    Takes effect at the officer's next login, when a new token is issued.

    Raises:
        BadRequestError: If the user is not an officer or an admin-only
            permission is requested
    """
    user = await get_user(db, user_id)
    if user.role != UserRole.OFFICER:
        raise BadRequestError("Permissions can only be set on officers", "NOT_AN_OFFICER")

    previous = list(user.permissions or [])
    user.permissions = _officer_permissions(permissions)
    audit(
        db,
        action="OFFICER_PERMISSIONS_UPDATED",
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        user_id=admin.id,
        user_role=admin.role.value,
        details={"from": previous, "to": user.permissions},
    )
    await db.commit()
    await db.refresh(user)

    logger.info(f"Officer {user.id} permissions set to {user.permissions}")
    return user


async def deactivate_user(db: AsyncSession, admin: CurrentUser, user_id: UUID) -> User:
    if user_id == admin.id:
        raise BadRequestError("You cannot deactivate your own account", "CANNOT_DEACTIVATE_SELF")

    user = await get_user(db, user_id)
    if not user.is_active:
        return user

    user.is_active = False
    audit(
        db,
        action="USER_DEACTIVATED",
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        user_id=admin.id,
        user_role=admin.role.value,
    )
    await db.commit()
    await db.refresh(user)

    logger.info(f"Admin {admin.id} deactivated user {user.id}")
    return user
