"""
User Models

Identity records for applicants, officers and admins.
"""

from enum import Enum

from sqlalchemy import Boolean, String, Text
from sqlalchemy.dialects.postgresql import ENUM, JSON
from sqlalchemy.orm import Mapped, mapped_column

from visa_api.modules.shared.models import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    APPLICANT = "APPLICANT"
    OFFICER = "OFFICER"
    ADMIN = "ADMIN"


class Permission(str, Enum):
    """Fine-grained permissions carried in the access token."""

    APPLICATIONS_VIEW_APPLICATIONS = "APPLICATIONS_VIEW_APPLICATIONS"
    APPLICATIONS_MANAGE_APPLICATIONS = "APPLICATIONS_MANAGE_APPLICATIONS"
    INTERVIEWS_SCHEDULE_INTERVIEWS = "INTERVIEWS_SCHEDULE_INTERVIEWS"
    INTERVIEWS_CONDUCT_INTERVIEWS = "INTERVIEWS_CONDUCT_INTERVIEWS"
    PAYMENTS_VIEW_PAYMENTS = "PAYMENTS_VIEW_PAYMENTS"
    USERS_MANAGE_USERS = "USERS_MANAGE_USERS"


OFFICER_DEFAULT_PERMISSIONS: list[str] = [
    Permission.APPLICATIONS_VIEW_APPLICATIONS.value,
    Permission.APPLICATIONS_MANAGE_APPLICATIONS.value,
    Permission.INTERVIEWS_SCHEDULE_INTERVIEWS.value,
    Permission.INTERVIEWS_CONDUCT_INTERVIEWS.value,
]


class User(BaseModel):
    """
    User model for authentication and authorization.

    Officers additionally carry department/title and a permission list;
    their workload is derived from assigned applications, not stored.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True),
        nullable=False,
        default=UserRole.APPLICANT,
        index=True,
    )
    permissions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Officer profile
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    title: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def full_name(self) -> str:
        """Return user's full name."""
        return f"{self.first_name} {self.last_name}"
