"""User administration schemas."""

from pydantic import BaseModel, EmailStr, Field

from visa_api.modules.users.models import Permission


class OfficerCreate(BaseModel):
    """An officer account created by an administrator."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    title: str | None = Field(None, max_length=100)
    permissions: list[Permission] | None = None


class UserUpdate(BaseModel):
    """Partial profile update. Omitted fields are left unchanged."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    title: str | None = Field(None, max_length=100)
    is_active: bool | None = None


class PermissionsUpdate(BaseModel):
    permissions: list[Permission]
