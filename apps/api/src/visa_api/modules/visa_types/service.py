"""Visa type catalogue operations."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.errors import ConflictError, NotFoundError
from visa_api.modules.visa_types import repository
from visa_api.modules.visa_types.models import VisaType
from visa_api.modules.visa_types.schemas import VisaTypeCreate

logger = logging.getLogger(__name__)


async def list_visa_types(db: AsyncSession) -> list[VisaType]:
    return await repository.list_active(db)


async def get_visa_type(db: AsyncSession, visa_type_id: UUID) -> VisaType:
    visa_type = await repository.get_by_id(db, visa_type_id)
    if not visa_type:
        raise NotFoundError(f"Visa type {visa_type_id} not found", "VISA_TYPE_NOT_FOUND")
    return visa_type


async def create_visa_type(db: AsyncSession, data: VisaTypeCreate) -> VisaType:
    if await repository.get_by_slug(db, data.slug):
        raise ConflictError(f"A visa type with slug '{data.slug}' already exists")

    visa_type = await repository.create(db, **data.model_dump())
    await db.commit()
    logger.info(f"Created visa type {visa_type.slug} ({visa_type.id})")
    return visa_type
