"""
Visa Application Repository

Database operations for applications and their satellite records.
Functions here flush but never commit; the service layer owns the
transaction boundary.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    ApplicationNote,
    ApplicationStatus,
    PersonalInfo,
    TravelInfo,
    VisaApplication,
)

# Statuses that count towards an officer's workload
ACTIVE_WORKLOAD_STATUSES = (ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW)


async def create(
    db: AsyncSession,
    user_id: UUID,
    visa_type_id: UUID,
    application_number: str,
) -> VisaApplication:
    """Insert a new PENDING application."""
    application = VisaApplication(
        user_id=user_id,
        visa_type_id=visa_type_id,
        application_number=application_number,
        status=ApplicationStatus.PENDING,
    )
    db.add(application)
    await db.flush()
    await db.refresh(application)
    return application


async def get_by_id(db: AsyncSession, id: UUID) -> VisaApplication | None:
    """Get application by ID."""
    return await db.get(VisaApplication, id)


async def lock(db: AsyncSession, id: UUID) -> None:
    """
    Take a row lock on the application until the transaction ends.

    Serialises writers that check-then-insert child rows (document uploads
    by type, interview scheduling).
    """
    await db.execute(
        select(VisaApplication.id).where(VisaApplication.id == id).with_for_update()
    )


async def get_pending_draft(
    db: AsyncSession,
    user_id: UUID,
    visa_type_id: UUID,
) -> VisaApplication | None:
    """The user's unsubmitted PENDING application for a visa type, if any."""
    result = await db.execute(
        select(VisaApplication)
        .where(
            VisaApplication.user_id == user_id,
            VisaApplication.visa_type_id == visa_type_id,
            VisaApplication.status == ApplicationStatus.PENDING,
            VisaApplication.submission_date.is_(None),
        )
        .order_by(VisaApplication.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_for_user(db: AsyncSession, user_id: UUID) -> list[VisaApplication]:
    result = await db.execute(
        select(VisaApplication)
        .where(VisaApplication.user_id == user_id)
        .order_by(VisaApplication.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all(
    db: AsyncSession,
    status: ApplicationStatus | None = None,
    officer_id: UUID | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[VisaApplication], int]:
    """Paginated listing for staff. Returns (items, total)."""
    conditions = []
    if status is not None:
        conditions.append(VisaApplication.status == status)
    if officer_id is not None:
        conditions.append(VisaApplication.officer_id == officer_id)

    total_result = await db.execute(
        select(func.count()).select_from(VisaApplication).where(*conditions)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(VisaApplication)
        .where(*conditions)
        .order_by(VisaApplication.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def transition_status(
    db: AsyncSession,
    id: UUID,
    expected_status: ApplicationStatus,
    new_status: ApplicationStatus,
    **values: Any,
) -> bool:
    """
    Move an application from expected_status to new_status in one statement.

    The WHERE clause on the current status makes the read-check-write atomic:
    if a concurrent request already changed the status, no row matches.

    Returns:
        True if the row was updated, False if the status no longer matched
    """
    result = await db.execute(
        update(VisaApplication)
        .where(VisaApplication.id == id, VisaApplication.status == expected_status)
        .values(status=new_status, **values)
    )
    return result.rowcount == 1


async def get_officer_workloads(
    db: AsyncSession,
    officer_ids: list[UUID],
) -> dict[UUID, int]:
    """
    Count active applications per officer.

    Officers with no active applications are absent from the result.
    """
    if not officer_ids:
        return {}

    result = await db.execute(
        select(VisaApplication.officer_id, func.count(VisaApplication.id))
        .where(
            VisaApplication.officer_id.in_(officer_ids),
            VisaApplication.status.in_(ACTIVE_WORKLOAD_STATUSES),
        )
        .group_by(VisaApplication.officer_id)
    )
    return {officer_id: count for officer_id, count in result.all()}


# ============================================
# Personal / travel info
# ============================================


async def get_personal_info(db: AsyncSession, application_id: UUID) -> PersonalInfo | None:
    result = await db.execute(
        select(PersonalInfo).where(PersonalInfo.application_id == application_id)
    )
    return result.scalar_one_or_none()


async def get_travel_info(db: AsyncSession, application_id: UUID) -> TravelInfo | None:
    result = await db.execute(select(TravelInfo).where(TravelInfo.application_id == application_id))
    return result.scalar_one_or_none()


async def save(db: AsyncSession, instance: Any) -> Any:
    """Add (or re-add) an instance and flush it."""
    db.add(instance)
    await db.flush()
    await db.refresh(instance)
    return instance


# ============================================
# Notes
# ============================================


async def get_note(db: AsyncSession, note_id: UUID) -> ApplicationNote | None:
    return await db.get(ApplicationNote, note_id)


async def list_notes(db: AsyncSession, application_id: UUID) -> list[ApplicationNote]:
    result = await db.execute(
        select(ApplicationNote)
        .where(ApplicationNote.application_id == application_id)
        .order_by(ApplicationNote.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_note(db: AsyncSession, note: ApplicationNote) -> None:
    await db.delete(note)
    await db.flush()

