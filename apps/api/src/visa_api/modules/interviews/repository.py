"""
Interview Repository
"""

from typing import Any
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.modules.applications.models import VisaApplication

from .models import ACTIVE_INTERVIEW_STATUSES, Interview, InterviewStatus


async def get_by_id(db: AsyncSession, id: UUID) -> Interview | None:
    return await db.get(Interview, id)


async def get_active_for_application(db: AsyncSession, application_id: UUID) -> Interview | None:
    result = await db.execute(
        select(Interview)
        .where(
            Interview.application_id == application_id,
            Interview.status.in_(ACTIVE_INTERVIEW_STATUSES),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_for_application(db: AsyncSession, application_id: UUID) -> list[Interview]:
    result = await db.execute(
        select(Interview)
        .where(Interview.application_id == application_id)
        .order_by(Interview.scheduled_at.desc())
    )
    return list(result.scalars().all())


async def list_for_officer(
    db: AsyncSession,
    officer_id: UUID,
    status: InterviewStatus | None = None,
) -> list[Interview]:
    """Interviews the officer conducts or scheduled."""
    query = select(Interview).where(
        or_(Interview.assigned_officer_id == officer_id, Interview.scheduler_id == officer_id)
    )
    if status is not None:
        query = query.where(Interview.status == status)
    result = await db.execute(query.order_by(Interview.scheduled_at))
    return list(result.scalars().all())


async def list_for_applicant(db: AsyncSession, user_id: UUID) -> list[Interview]:
    result = await db.execute(
        select(Interview)
        .join(VisaApplication, VisaApplication.id == Interview.application_id)
        .where(VisaApplication.user_id == user_id)
        .order_by(Interview.scheduled_at)
    )
    return list(result.scalars().all())


async def create(db: AsyncSession, **fields: Any) -> Interview:
    interview = Interview(status=InterviewStatus.SCHEDULED, confirmed=False, **fields)
    db.add(interview)
    await db.flush()
    await db.refresh(interview)
    return interview


async def transition(
    db: AsyncSession,
    id: UUID,
    from_statuses: tuple[InterviewStatus, ...],
    *conditions: Any,
    **values: Any,
) -> bool:
    """
    Update an interview only if its status is still one of from_statuses
    (and any extra conditions hold).

    Returns:
        True if the row was updated
    """
    result = await db.execute(
        update(Interview)
        .where(Interview.id == id, Interview.status.in_(from_statuses), *conditions)
        .values(**values)
    )
    return result.rowcount == 1
