"""
Visa Application Service Layer

Owns the application lifecycle:

1. Creation
   - Idempotent per (user, visa type): an unsubmitted PENDING draft is
     returned instead of creating a second one. A partial unique index
     backs this, so a concurrent duplicate insert falls back to the draft
   - Requires an existing user and an active visa type

2. Submission (PENDING -> SUBMITTED)
   - Owner only, and only once personal and travel info exist
   - Sets submission_date and assigns the least-loaded active officer
   - The status change is a conditional UPDATE, so two concurrent submits
     cannot both succeed

3. Decisions (updateApplicationStatus)
   - Officers/admins with APPLICATIONS_MANAGE_APPLICATIONS
   - Any target status except the current one
   - APPROVED sets expiry_date, REJECTED records the reason

4. Satellite records: personal info, travel info, financial info
   (owner only, while PENDING) and internal officer notes

Every mutation writes an audit entry in the same transaction. Emails are
handed to the notifier after commit and never affect the outcome.
"""

import calendar
import logging
import secrets
from datetime import UTC, date, datetime, timedelta
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.config import settings
from visa_api.core.email import send_application_status_changed, send_application_submitted
from visa_api.core.errors import BadRequestError, ForbiddenError, NotFoundError
from visa_api.core.notifier import notify
from visa_api.modules.applications import repository
from visa_api.modules.applications.assignment import find_officer_for_assignment
from visa_api.modules.applications.models import (
    ApplicationNote,
    ApplicationStatus,
    PersonalInfo,
    TravelInfo,
    VisaApplication,
)
from visa_api.modules.applications.schemas import (
    FinancialInfoUpdate,
    PersonalInfoUpsert,
    TravelInfoUpsert,
)
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.notifications import service as inbox
from visa_api.modules.notifications.models import NotificationType
from visa_api.modules.users.models import Permission
from visa_api.modules.users.repository import UserRepository
from visa_api.modules.visa_types import repository as visa_type_repository

logger = logging.getLogger(__name__)

# Constants
PASSPORT_MIN_VALIDITY_MONTHS = 6
MAX_STAY_DAYS = 90


class ApplicationNotFoundError(NotFoundError):
    """Raised when an application is not found."""

    def __init__(self, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(message=message, error_code="APPLICATION_NOT_FOUND")


class InvalidApplicationStateError(BadRequestError):
    """Raised when an application is not in the state an operation requires."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_APPLICATION_STATE")


class ApplicationAccessDeniedError(ForbiddenError):
    """Raised when the caller neither owns the application nor is staff."""

    def __init__(self, message: str = "You do not have access to this application"):
        super().__init__(message=message, error_code="APPLICATION_ACCESS_DENIED")


class IncompleteApplicationError(BadRequestError):
    """Raised when submitting without personal or travel info."""

    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Complete the following before submitting: {', '.join(missing)}",
            error_code="INCOMPLETE_APPLICATION",
        )


# ============================================
# Helpers
# ============================================


def generate_application_number(now: datetime | None = None) -> str:
    """
    Build a human-facing application number: VISA-<year>-<5 digits>.

    Uniqueness is enforced by the database; a collision surfaces as 409.
    """
    year = (now or datetime.now(UTC)).year
    return f"VISA-{year}-{10000 + secrets.randbelow(90000)}"


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def missing_sections(application: VisaApplication) -> list[str]:
    """Satellite records that must exist before submission."""
    missing = []
    if application.personal_info is None:
        missing.append("personal information")
    if application.travel_info is None:
        missing.append("travel information")
    return missing


async def get_application_or_404(db: AsyncSession, application_id: UUID) -> VisaApplication:
    application = await repository.get_by_id(db, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)
    return application


def ensure_can_view(user: CurrentUser, application: VisaApplication) -> None:
    """Owners and staff may read an application."""
    if application.user_id != user.id and not user.is_staff:
        logger.warning(f"User {user.id} denied access to application {application.id}")
        raise ApplicationAccessDeniedError()


def ensure_owner(user: CurrentUser, application: VisaApplication) -> None:
    if application.user_id != user.id:
        logger.warning(f"User {user.id} is not the owner of application {application.id}")
        raise ApplicationAccessDeniedError("Only the applicant can perform this action")


async def get_application_for_user(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> VisaApplication:
    """Load an application the caller may see."""
    application = await get_application_or_404(db, application_id)
    ensure_can_view(user, application)
    return application


async def _get_editable_application(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> VisaApplication:
    application = await get_application_or_404(db, application_id)
    ensure_owner(user, application)
    if application.status != ApplicationStatus.PENDING:
        raise InvalidApplicationStateError(
            "Application can no longer be modified after submission"
        )
    return application


# ============================================
# Creation
# ============================================


async def create_application(
    db: AsyncSession,
    user: CurrentUser,
    visa_type_id: UUID,
) -> tuple[VisaApplication, bool]:
    """
    Create a visa application, or return the caller's existing draft.

    Returns:
        (application, created) where created is False for an existing draft

    Raises:
        NotFoundError: If the user or visa type does not exist
        BadRequestError: If the visa type is inactive
    """
    if not await UserRepository.get_by_id(db, user.id):
        raise NotFoundError("User not found", "USER_NOT_FOUND")

    visa_type = await visa_type_repository.get_by_id(db, visa_type_id)
    if not visa_type:
        raise NotFoundError(f"Visa type {visa_type_id} not found", "VISA_TYPE_NOT_FOUND")
    if not visa_type.is_active:
        raise BadRequestError(
            f"Visa type '{visa_type.name}' is not currently accepting applications",
            "VISA_TYPE_INACTIVE",
        )

    existing = await repository.get_pending_draft(db, user.id, visa_type_id)
    if existing:
        logger.info(
            f"Returning existing draft {existing.id} for user {user.id}, visa type {visa_type_id}"
        )
        return existing, False

    try:
        async with db.begin_nested():
            application = await repository.create(
                db,
                user_id=user.id,
                visa_type_id=visa_type_id,
                application_number=generate_application_number(),
            )
    except IntegrityError:
        # A concurrent request inserted the draft first
        existing = await repository.get_pending_draft(db, user.id, visa_type_id)
        if existing is None:
            raise
        logger.info(
            f"Concurrent create resolved to draft {existing.id} for user {user.id}, "
            f"visa type {visa_type_id}"
        )
        return existing, False

    audit(
        db,
        action="APPLICATION_CREATED",
        entity_type=AuditEntityType.VISA_APPLICATION,
        entity_id=application.id,
        user_id=user.id,
        user_role=user.role.value,
        details={"application_number": application.application_number},
    )
    await db.commit()
    await db.refresh(application)

    logger.info(f"Created application {application.application_number} ({application.id})")
    return application, True


# ============================================
# Submission
# ============================================


async def apply_submission(
    db: AsyncSession,
    application: VisaApplication,
    actor_id: UUID | None,
    actor_role: str | None,
) -> bool:
    """
    PENDING -> SUBMITTED inside the caller's transaction, without committing.

    Assigns an officer, records the audit entry and the in-app notification.

    Returns:
        False if the application was no longer PENDING when the update ran
    """
    officer = await find_officer_for_assignment(db)
    now = datetime.now(UTC)

    updated = await repository.transition_status(
        db,
        application.id,
        expected_status=ApplicationStatus.PENDING,
        new_status=ApplicationStatus.SUBMITTED,
        # An application sent back to PENDING keeps its first submission date
        submission_date=func.coalesce(VisaApplication.submission_date, now),
        officer_id=officer.id if officer else None,
    )
    if not updated:
        return False

    audit(
        db,
        action="APPLICATION_SUBMITTED",
        entity_type=AuditEntityType.VISA_APPLICATION,
        entity_id=application.id,
        user_id=actor_id,
        user_role=actor_role,
        details={"officer_id": str(officer.id) if officer else None},
    )
    inbox.push(
        db,
        user_id=application.user_id,
        application_id=application.id,
        type=NotificationType.APPLICATION_SUBMITTED,
        title="Application submitted",
        message=(
            f"Your visa application {application.application_number} "
            "has been submitted successfully."
        ),
    )
    return True


def notify_submitted(application: VisaApplication) -> None:
    """Queue the submission confirmation email. Call after commit."""
    applicant = application.applicant
    notify(
        send_application_submitted(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            application_id=str(application.id),
        ),
        f"submission email for application {application.id}",
    )


async def submit_application(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> VisaApplication:
    """
    Submit a completed application for review.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        ApplicationAccessDeniedError: If the caller is not the owner
        InvalidApplicationStateError: If it is not PENDING (or a concurrent
            submit won the race)
        IncompleteApplicationError: If personal or travel info is missing
    """
    application = await get_application_or_404(db, application_id)
    ensure_owner(user, application)

    if application.status != ApplicationStatus.PENDING:
        raise InvalidApplicationStateError("Application has already been submitted")

    missing = missing_sections(application)
    if missing:
        logger.warning(f"Submission of {application.id} blocked, missing: {missing}")
        raise IncompleteApplicationError(missing)

    if not await apply_submission(db, application, user.id, user.role.value):
        await db.rollback()
        logger.warning(f"Concurrent submission detected for application {application.id}")
        raise InvalidApplicationStateError("Application has already been submitted")

    await db.commit()
    await db.refresh(application)

    logger.info(
        f"Application {application.application_number} submitted, "
        f"assigned to officer {application.officer_id}"
    )
    notify_submitted(application)
    return application


# ============================================
# Decisions
# ============================================


def decision_fields(
    new_status: ApplicationStatus,
    rejection_reason: str | None,
    now: datetime,
) -> dict:
    """Columns written alongside a status change."""
    fields: dict = {"decision_date": now, "rejection_reason": None, "expiry_date": None}
    if new_status == ApplicationStatus.REJECTED:
        fields["rejection_reason"] = rejection_reason
    elif new_status == ApplicationStatus.APPROVED:
        fields["expiry_date"] = now + timedelta(days=settings.visa_validity_days)
    return fields


async def update_application_status(
    db: AsyncSession,
    officer: CurrentUser,
    application_id: UUID,
    new_status: ApplicationStatus,
    rejection_reason: str | None = None,
) -> VisaApplication:
    """
    Set an application's status.

    Any status other than the current one is accepted; no-op changes are
    rejected.

    Raises:
        ForbiddenError: If the caller lacks APPLICATIONS_MANAGE_APPLICATIONS
        ApplicationNotFoundError: If the application doesn't exist
        InvalidApplicationStateError: If new_status equals the current status
        BadRequestError: If rejecting without a reason
    """
    if not officer.has_permission(Permission.APPLICATIONS_MANAGE_APPLICATIONS.value):
        raise ForbiddenError("You do not have permission to manage applications")

    application = await get_application_or_404(db, application_id)
    previous_status = application.status

    if new_status == previous_status:
        raise InvalidApplicationStateError("Application is already in this status")

    if new_status == ApplicationStatus.REJECTED and not (
        rejection_reason and rejection_reason.strip()
    ):
        raise BadRequestError("A rejection reason is required", "REJECTION_REASON_REQUIRED")

    fields = decision_fields(new_status, rejection_reason, datetime.now(UTC))
    updated = await repository.transition_status(
        db,
        application.id,
        expected_status=previous_status,
        new_status=new_status,
        **fields,
    )
    if not updated:
        await db.rollback()
        raise InvalidApplicationStateError(
            "Application status was changed by another request. Please reload and retry."
        )

    audit(
        db,
        action="APPLICATION_STATUS_UPDATED",
        entity_type=AuditEntityType.VISA_APPLICATION,
        entity_id=application.id,
        user_id=officer.id,
        user_role=officer.role.value,
        details={
            "from": previous_status.value,
            "to": new_status.value,
            "rejection_reason": fields["rejection_reason"],
        },
    )
    inbox.push(
        db,
        user_id=application.user_id,
        application_id=application.id,
        type=NotificationType.STATUS_CHANGED,
        title="Application status updated",
        message=(
            f"Your visa application {application.application_number} "
            f"status has been updated to {new_status.value}."
        ),
    )
    await db.commit()
    await db.refresh(application)

    logger.info(
        f"Application {application.id} status {previous_status.value} -> {new_status.value} "
        f"by officer {officer.id}"
    )

    applicant = application.applicant
    notify(
        send_application_status_changed(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            application_id=str(application.id),
            new_status=new_status.value,
            rejection_reason=application.rejection_reason,
            expiry_date=application.expiry_date,
        ),
        f"status email for application {application.id}",
    )
    return application


# ============================================
# Queries
# ============================================


async def list_my_applications(db: AsyncSession, user: CurrentUser) -> list[VisaApplication]:
    return await repository.list_for_user(db, user.id)


async def list_applications(
    db: AsyncSession,
    status: ApplicationStatus | None = None,
    officer_id: UUID | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[VisaApplication], int]:
    return await repository.list_all(
        db, status=status, officer_id=officer_id, skip=skip, limit=limit
    )


# ============================================
# Personal / travel / financial info
# ============================================


def validate_passport(expiry_date: date, today: date | None = None) -> None:
    """The passport must be valid for at least six months from today."""
    today = today or date.today()
    if expiry_date <= today:
        raise BadRequestError("Passport has expired", "PASSPORT_EXPIRED")
    if expiry_date < add_months(today, PASSPORT_MIN_VALIDITY_MONTHS):
        raise BadRequestError(
            f"Passport must be valid for at least {PASSPORT_MIN_VALIDITY_MONTHS} months",
            "PASSPORT_VALIDITY_TOO_SHORT",
        )


def validate_travel_dates(entry: date, exit: date, today: date | None = None) -> None:
    today = today or date.today()
    if entry < today:
        raise BadRequestError("Intended entry date cannot be in the past", "INVALID_TRAVEL_DATES")
    if exit <= entry:
        raise BadRequestError(
            "Intended exit date must be after the entry date", "INVALID_TRAVEL_DATES"
        )
    if (exit - entry).days > MAX_STAY_DAYS:
        raise BadRequestError(
            f"Maximum stay duration is {MAX_STAY_DAYS} days", "STAY_TOO_LONG"
        )


async def upsert_personal_info(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
    data: PersonalInfoUpsert,
) -> PersonalInfo:
    application = await _get_editable_application(db, user, application_id)
    validate_passport(data.passport_expiry_date)

    info = await repository.get_personal_info(db, application.id)
    action = "PERSONAL_INFO_UPDATED" if info else "PERSONAL_INFO_CREATED"
    if info is None:
        info = PersonalInfo(application_id=application.id)
    for field, value in data.model_dump().items():
        setattr(info, field, value)

    info = await repository.save(db, info)
    audit(
        db,
        action=action,
        entity_type=AuditEntityType.VISA_APPLICATION,
        entity_id=application.id,
        user_id=user.id,
        user_role=user.role.value,
    )
    await db.commit()

    logger.info(f"{action} for application {application.id}")
    return info


async def upsert_travel_info(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
    data: TravelInfoUpsert,
) -> TravelInfo:
    application = await _get_editable_application(db, user, application_id)
    validate_travel_dates(data.intended_entry_date, data.intended_exit_date)

    info = await repository.get_travel_info(db, application.id)
    action = "TRAVEL_INFO_UPDATED" if info else "TRAVEL_INFO_CREATED"
    if info is None:
        info = TravelInfo(application_id=application.id)
    for field, value in data.model_dump().items():
        setattr(info, field, value)

    info = await repository.save(db, info)
    audit(
        db,
        action=action,
        entity_type=AuditEntityType.VISA_APPLICATION,
        entity_id=application.id,
        user_id=user.id,
        user_role=user.role.value,
    )
    await db.commit()

    logger.info(f"{action} for application {application.id}")
    return info


async def get_personal_info(
    db: AsyncSession, user: CurrentUser, application_id: UUID
) -> PersonalInfo:
    await get_application_for_user(db, user, application_id)
    info = await repository.get_personal_info(db, application_id)
    if not info:
        raise NotFoundError("Personal information not found", "PERSONAL_INFO_NOT_FOUND")
    return info


async def get_travel_info(
    db: AsyncSession, user: CurrentUser, application_id: UUID
) -> TravelInfo:
    await get_application_for_user(db, user, application_id)
    info = await repository.get_travel_info(db, application_id)
    if not info:
        raise NotFoundError("Travel information not found", "TRAVEL_INFO_NOT_FOUND")
    return info


async def update_financial_info(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
    data: FinancialInfoUpdate,
) -> VisaApplication:
    application = await _get_editable_application(db, user, application_id)

    application.funding_source = data.funding_source
    application.monthly_income = data.monthly_income
    audit(
        db,
        action="FINANCIAL_INFO_UPDATED",
        entity_type=AuditEntityType.VISA_APPLICATION,
        entity_id=application.id,
        user_id=user.id,
        user_role=user.role.value,
    )
    await db.commit()
    await db.refresh(application)
    return application


# ============================================
# Officer notes
# ============================================


async def add_note(
    db: AsyncSession,
    officer: CurrentUser,
    application_id: UUID,
    content: str,
) -> ApplicationNote:
    application = await get_application_or_404(db, application_id)

    note = await repository.save(
        db,
        ApplicationNote(application_id=application.id, officer_id=officer.id, content=content),
    )
    audit(
        db,
        action="NOTE_CREATED",
        entity_type=AuditEntityType.NOTE,
        entity_id=note.id,
        user_id=officer.id,
        user_role=officer.role.value,
        details={"application_id": str(application.id)},
    )
    await db.commit()
    return note


async def list_notes(db: AsyncSession, application_id: UUID) -> list[ApplicationNote]:
    await get_application_or_404(db, application_id)
    return await repository.list_notes(db, application_id)


async def _get_own_note(db: AsyncSession, officer: CurrentUser, note_id: UUID) -> ApplicationNote:
    note = await repository.get_note(db, note_id)
    if not note:
        raise NotFoundError("Note not found", "NOTE_NOT_FOUND")
    if note.officer_id != officer.id:
        raise ForbiddenError("You can only modify your own notes", "NOTE_NOT_OWNED")
    return note


async def update_note(
    db: AsyncSession,
    officer: CurrentUser,
    note_id: UUID,
    content: str,
) -> ApplicationNote:
    note = await _get_own_note(db, officer, note_id)
    note.content = content
    audit(
        db,
        action="NOTE_UPDATED",
        entity_type=AuditEntityType.NOTE,
        entity_id=note.id,
        user_id=officer.id,
        user_role=officer.role.value,
    )
    await db.commit()
    await db.refresh(note)
    return note


async def delete_note(db: AsyncSession, officer: CurrentUser, note_id: UUID) -> None:
    note = await _get_own_note(db, officer, note_id)
    await repository.delete_note(db, note)
    audit(
        db,
        action="NOTE_DELETED",
        entity_type=AuditEntityType.NOTE,
        entity_id=note_id,
        user_id=officer.id,
        user_role=officer.role.value,
    )
    await db.commit()
