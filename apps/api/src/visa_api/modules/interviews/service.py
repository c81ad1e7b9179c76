"""
Interview Service Layer

State machine:

    SCHEDULED --reschedule--> RESCHEDULED --reschedule--> RESCHEDULED
    SCHEDULED | RESCHEDULED --cancel--> CANCELLED   (terminal)
    SCHEDULED | RESCHEDULED --complete--> COMPLETED (terminal)

`confirmed` is set once by the applicant while the interview is active and
is cleared by rescheduling.

Scheduling and cancelling need INTERVIEWS_SCHEDULE_INTERVIEWS; rescheduling
and completing need INTERVIEWS_CONDUCT_INTERVIEWS. Changes to an existing
interview are reserved for its assigned officer or its scheduler.
Only one active interview may exist per application.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.email import (
    send_interview_cancelled,
    send_interview_completed,
    send_interview_confirmed,
    send_interview_scheduled,
)
from visa_api.core.errors import BadRequestError, ForbiddenError, NotFoundError
from visa_api.core.notifier import notify
from visa_api.modules.applications import repository as application_repository
from visa_api.modules.applications.service import (
    ensure_can_view,
    ensure_owner,
    get_application_or_404,
)
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.interviews import repository
from visa_api.modules.interviews.models import (
    ACTIVE_INTERVIEW_STATUSES,
    Interview,
    InterviewStatus,
)
from visa_api.modules.interviews.schemas import (
    InterviewComplete,
    InterviewCreate,
    InterviewReschedule,
)
from visa_api.modules.notifications import service as inbox
from visa_api.modules.notifications.models import NotificationType
from visa_api.modules.users.models import Permission, UserRole
from visa_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class InterviewNotFoundError(NotFoundError):
    def __init__(self, interview_id: UUID):
        super().__init__(f"Interview {interview_id} not found", "INTERVIEW_NOT_FOUND")


class InvalidInterviewStateError(BadRequestError):
    def __init__(self, message: str):
        super().__init__(message, "INVALID_INTERVIEW_STATE")


async def _get_interview_or_404(db: AsyncSession, interview_id: UUID) -> Interview:
    interview = await repository.get_by_id(db, interview_id)
    if not interview:
        raise InterviewNotFoundError(interview_id)
    return interview


def _ensure_can_manage(user: CurrentUser, interview: Interview) -> None:
    if user.id not in (interview.assigned_officer_id, interview.scheduler_id):
        logger.warning(f"User {user.id} cannot manage interview {interview.id}")
        raise ForbiddenError(
            "Only the assigned officer or the scheduler can modify this interview",
            "NOT_INTERVIEW_OFFICER",
        )


def _ensure_permission(user: CurrentUser, permission: Permission) -> None:
    if not user.has_permission(permission.value):
        logger.warning(f"User {user.id} lacks {permission.value}")
        raise ForbiddenError(
            f"Missing required permission: {permission.value}", "PERMISSION_DENIED"
        )


def _ensure_future(scheduled_at: datetime) -> None:
    if scheduled_at.tzinfo is None:
        scheduled_at = scheduled_at.replace(tzinfo=UTC)
    if scheduled_at <= datetime.now(UTC):
        raise BadRequestError("Interview must be scheduled in the future", "INVALID_INTERVIEW_DATE")


def _audit(db: AsyncSession, user: CurrentUser, action: str, interview_id: UUID, **details) -> None:
    audit(
        db,
        action=action,
        entity_type=AuditEntityType.INTERVIEW,
        entity_id=interview_id,
        user_id=user.id,
        user_role=user.role.value,
        details=details or None,
    )


async def schedule_interview(
    db: AsyncSession,
    scheduler: CurrentUser,
    application_id: UUID,
    data: InterviewCreate,
) -> Interview:
    """
    Schedule an interview and invite the applicant.

    Raises:
        ForbiddenError: If the scheduler lacks INTERVIEWS_SCHEDULE_INTERVIEWS
        BadRequestError: If the assigned user is not an active officer,
            the date is in the past, or an active interview already exists
    """
    _ensure_permission(scheduler, Permission.INTERVIEWS_SCHEDULE_INTERVIEWS)

    application = await get_application_or_404(db, application_id)

    officer = await UserRepository.get_by_id(db, data.assigned_officer_id)
    if not officer or officer.role != UserRole.OFFICER or not officer.is_active:
        raise BadRequestError("Invalid assigned officer", "INVALID_ASSIGNED_OFFICER")

    _ensure_future(data.scheduled_at)

    await application_repository.lock(db, application.id)
    if await repository.get_active_for_application(db, application.id):
        raise InvalidInterviewStateError(
            "An active interview is already scheduled for this application"
        )

    interview = await repository.create(
        db,
        application_id=application.id,
        assigned_officer_id=officer.id,
        scheduler_id=scheduler.id,
        scheduled_at=data.scheduled_at,
        location=data.location,
        notes=data.notes,
    )
    _audit(db, scheduler, "INTERVIEW_SCHEDULED", interview.id, application_id=str(application.id))
    inbox.push(
        db,
        user_id=application.user_id,
        application_id=application.id,
        type=NotificationType.INTERVIEW_SCHEDULED,
        title="Interview scheduled",
        message=(
            f"An interview for application {application.application_number} "
            f"has been scheduled at {data.location}."
        ),
    )
    await db.commit()
    await db.refresh(interview)

    logger.info(f"Interview {interview.id} scheduled for application {application.id}")

    applicant = application.applicant
    notify(
        send_interview_scheduled(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            scheduled_at=interview.scheduled_at,
            location=interview.location,
        ),
        f"interview invitation for interview {interview.id}",
    )
    return interview


async def get_interview(db: AsyncSession, user: CurrentUser, interview_id: UUID) -> Interview:
    interview = await _get_interview_or_404(db, interview_id)
    ensure_can_view(user, interview.application)
    return interview


async def list_for_application(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> list[Interview]:
    application = await get_application_or_404(db, application_id)
    ensure_can_view(user, application)
    return await repository.list_for_application(db, application_id)


async def list_for_officer(
    db: AsyncSession,
    officer: CurrentUser,
    status: InterviewStatus | None = None,
) -> list[Interview]:
    return await repository.list_for_officer(db, officer.id, status)


async def list_for_applicant(db: AsyncSession, user: CurrentUser) -> list[Interview]:
    return await repository.list_for_applicant(db, user.id)


async def reschedule_interview(
    db: AsyncSession,
    user: CurrentUser,
    interview_id: UUID,
    data: InterviewReschedule,
) -> Interview:
    """Move an active interview; the applicant must confirm again."""
    interview = await _get_interview_or_404(db, interview_id)
    _ensure_permission(user, Permission.INTERVIEWS_CONDUCT_INTERVIEWS)
    _ensure_can_manage(user, interview)

    if interview.status not in ACTIVE_INTERVIEW_STATUSES:
        raise InvalidInterviewStateError(
            f"Cannot reschedule an interview that is {interview.status.value.lower()}"
        )
    _ensure_future(data.scheduled_at)

    values: dict = {
        "status": InterviewStatus.RESCHEDULED,
        "scheduled_at": data.scheduled_at,
        "confirmed": False,
        "confirmed_at": None,
    }
    if data.location is not None:
        values["location"] = data.location
    if data.notes is not None:
        values["notes"] = data.notes

    if not await repository.transition(db, interview.id, ACTIVE_INTERVIEW_STATUSES, **values):
        await db.rollback()
        raise InvalidInterviewStateError("Interview is no longer active")

    _audit(db, user, "INTERVIEW_RESCHEDULED", interview.id, scheduled_at=str(data.scheduled_at))
    await db.commit()
    await db.refresh(interview)

    logger.info(f"Interview {interview.id} rescheduled to {interview.scheduled_at}")

    application = interview.application
    applicant = application.applicant
    notify(
        send_interview_scheduled(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            scheduled_at=interview.scheduled_at,
            location=interview.location,
            rescheduled=True,
        ),
        f"reschedule email for interview {interview.id}",
    )
    return interview


async def cancel_interview(db: AsyncSession, user: CurrentUser, interview_id: UUID) -> Interview:
    interview = await _get_interview_or_404(db, interview_id)
    _ensure_permission(user, Permission.INTERVIEWS_SCHEDULE_INTERVIEWS)
    _ensure_can_manage(user, interview)

    if interview.status == InterviewStatus.CANCELLED:
        raise InvalidInterviewStateError("Interview is already cancelled")
    if interview.status == InterviewStatus.COMPLETED:
        raise InvalidInterviewStateError("Cannot cancel a completed interview")

    if not await repository.transition(
        db, interview.id, ACTIVE_INTERVIEW_STATUSES, status=InterviewStatus.CANCELLED
    ):
        await db.rollback()
        raise InvalidInterviewStateError("Interview is no longer active")

    _audit(db, user, "INTERVIEW_CANCELLED", interview.id)
    await db.commit()
    await db.refresh(interview)

    logger.info(f"Interview {interview.id} cancelled by {user.id}")

    application = interview.application
    applicant = application.applicant
    notify(
        send_interview_cancelled(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            scheduled_at=interview.scheduled_at,
        ),
        f"cancellation email for interview {interview.id}",
    )
    return interview


async def confirm_interview(db: AsyncSession, user: CurrentUser, interview_id: UUID) -> Interview:
    """Applicant confirms attendance. Allowed once per (re)scheduling."""
    interview = await _get_interview_or_404(db, interview_id)
    application = interview.application
    ensure_owner(user, application)

    if interview.status == InterviewStatus.CANCELLED:
        raise InvalidInterviewStateError("Cannot confirm a cancelled interview")
    if interview.status == InterviewStatus.COMPLETED:
        raise InvalidInterviewStateError("Cannot confirm a completed interview")
    if interview.confirmed:
        raise InvalidInterviewStateError("Interview is already confirmed")

    if not await repository.transition(
        db,
        interview.id,
        ACTIVE_INTERVIEW_STATUSES,
        Interview.confirmed.is_(False),
        confirmed=True,
        confirmed_at=datetime.now(UTC),
    ):
        await db.rollback()
        raise InvalidInterviewStateError("Interview changed before it could be confirmed")

    _audit(db, user, "INTERVIEW_CONFIRMED", interview.id)
    await db.commit()
    await db.refresh(interview)

    logger.info(f"Interview {interview.id} confirmed by applicant {user.id}")

    officer = interview.assigned_officer
    notify(
        send_interview_confirmed(
            to_email=officer.email,
            officer_name=officer.full_name,
            applicant_name=application.applicant.full_name,
            application_number=application.application_number,
            scheduled_at=interview.scheduled_at,
        ),
        f"confirmation email for interview {interview.id}",
    )
    return interview


async def complete_interview(
    db: AsyncSession,
    user: CurrentUser,
    interview_id: UUID,
    data: InterviewComplete,
) -> Interview:
    interview = await _get_interview_or_404(db, interview_id)
    _ensure_permission(user, Permission.INTERVIEWS_CONDUCT_INTERVIEWS)
    _ensure_can_manage(user, interview)

    if interview.status == InterviewStatus.COMPLETED:
        raise InvalidInterviewStateError("Interview is already marked as completed")
    if interview.status == InterviewStatus.CANCELLED:
        raise InvalidInterviewStateError("Cannot mark a cancelled interview as completed")

    values: dict = {"status": InterviewStatus.COMPLETED, "outcome": data.outcome}
    if data.notes is not None:
        values["notes"] = data.notes

    if not await repository.transition(db, interview.id, ACTIVE_INTERVIEW_STATUSES, **values):
        await db.rollback()
        raise InvalidInterviewStateError("Interview is no longer active")

    _audit(db, user, "INTERVIEW_COMPLETED", interview.id)
    await db.commit()
    await db.refresh(interview)

    logger.info(f"Interview {interview.id} completed by {user.id}")

    application = interview.application
    applicant = application.applicant
    notify(
        send_interview_completed(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
        ),
        f"completion email for interview {interview.id}",
    )
    return interview
