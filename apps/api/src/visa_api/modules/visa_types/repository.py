"""Visa type persistence."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.modules.visa_types.models import VisaType


async def get_by_id(db: AsyncSession, id: UUID) -> VisaType | None:
    return await db.get(VisaType, id)


async def get_by_slug(db: AsyncSession, slug: str) -> VisaType | None:
    result = await db.execute(select(VisaType).where(VisaType.slug == slug))
    return result.scalar_one_or_none()


async def list_active(db: AsyncSession) -> list[VisaType]:
    result = await db.execute(
        select(VisaType).where(VisaType.is_active.is_(True)).order_by(VisaType.name)
    )
    return list(result.scalars().all())


async def create(db: AsyncSession, **fields) -> VisaType:
    visa_type = VisaType(**fields)
    db.add(visa_type)
    await db.flush()
    await db.refresh(visa_type)
    return visa_type
