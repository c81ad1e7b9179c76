"""
User Repository

Database operations for user management.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.APPLICANT,
        permissions: list[str] | None = None,
        phone: str | None = None,
        department: str | None = None,
        title: str | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user record. The caller commits.

        Returns:
            Created User instance
        """
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            permissions=permissions or [],
            phone=phone,
            department=department,
            title=title,
            is_active=is_active,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Case-insensitive lookup by email address."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def get_active_officers(db: AsyncSession) -> list[User]:
        """
        Active officers in a stable order (oldest account first).

        Assignment breaks workload ties by this order.
        """
        result = await db.execute(
            select(User)
            .where(User.role == UserRole.OFFICER, User.is_active.is_(True))
            .order_by(User.created_at, User.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_users(
        db: AsyncSession,
        *,
        role: UserRole | None = None,
        is_active: bool | None = None,
    ) -> list[User]:
        query = select(User)
        if role is not None:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))
        result = await db.execute(query.order_by(User.created_at.desc()))
        return list(result.scalars().all())
