"""Visa type schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class VisaTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    slug: str = Field(..., min_length=1, max_length=150, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str | None = None
    fee: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    currency: str = Field("usd", min_length=3, max_length=3)
    processing_days: int = Field(15, ge=1)
    is_active: bool = True


class VisaTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    description: str | None
    fee: Decimal
    currency: str
    processing_days: int
    is_active: bool
