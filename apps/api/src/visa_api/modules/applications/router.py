"""
Visa Applications Router

Applicant endpoints require the caller to own the application; staff
endpoints are gated by role or permission. Service errors propagate to the
application-level exception handlers, which render the error envelope.

Security:
- Status changes require APPLICATIONS_MANAGE_APPLICATIONS and are rate limited
- Staff listings require APPLICATIONS_VIEW_APPLICATIONS
- Notes are visible to staff only
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import (
    CurrentUser,
    get_current_user,
    require_permission,
    require_roles,
    require_staff,
)
from visa_api.core.database import get_db
from visa_api.core.rate_limit import user_rate_limit
from visa_api.modules.applications import service
from visa_api.modules.applications.models import ApplicationStatus
from visa_api.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationDetailResponse,
    ApplicationListResponse,
    ApplicationResponse,
    FinancialInfoUpdate,
    NoteCreate,
    NoteResponse,
    PersonalInfoResponse,
    PersonalInfoUpsert,
    StatusUpdateRequest,
    TravelInfoResponse,
    TravelInfoUpsert,
)
from visa_api.modules.shared import ApiResponse, ok
from visa_api.modules.users.models import Permission, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()

# Officer decisions per minute
RATE_LIMIT_STATUS_UPDATE = (30, 60)

require_applicant = require_roles(UserRole.APPLICANT)


@router.post(
    "",
    response_model=ApiResponse[ApplicationResponse],
    summary="Create Visa Application",
    description="""
Create a visa application for a visa type.

Idempotent: if the caller already has an unsubmitted application for the
same visa type, that draft is returned with HTTP 200 instead of creating a
new one (HTTP 201).
""",
)
async def create_application(
    data: ApplicationCreate,
    response: Response,
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    application, created = await service.create_application(db, user, data.visa_type_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ok(
        ApplicationResponse.model_validate(application),
        "Application created" if created else "Existing draft application returned",
    )


@router.get("", response_model=ApiResponse[list[ApplicationResponse]])
async def list_my_applications(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    applications = await service.list_my_applications(db, user)
    return ok(
        [ApplicationResponse.model_validate(a) for a in applications],
        "Applications retrieved",
    )


@router.get(
    "/all",
    response_model=ApiResponse[ApplicationListResponse],
    dependencies=[Depends(require_permission(Permission.APPLICATIONS_VIEW_APPLICATIONS.value))],
)
async def list_all_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    officer_id: UUID | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await service.list_applications(
        db, status=status_filter, officer_id=officer_id, skip=skip, limit=limit
    )
    return ok(
        ApplicationListResponse(
            items=[ApplicationResponse.model_validate(a) for a in items],
            total=total,
            skip=skip,
            limit=limit,
        ),
        "Applications retrieved",
    )


@router.get("/{application_id}", response_model=ApiResponse[ApplicationDetailResponse])
async def get_application(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    application = await service.get_application_for_user(db, user, application_id)
    return ok(ApplicationDetailResponse.model_validate(application), "Application retrieved")


@router.post(
    "/{application_id}/submit",
    response_model=ApiResponse[ApplicationResponse],
    summary="Submit Visa Application",
    description="""
Submit a PENDING application for review.

Requires personal and travel information. On success the application
becomes SUBMITTED, gets its submission date, and is assigned to the active
officer with the lowest current workload (if any officer is active).
""",
)
async def submit_application(
    application_id: UUID,
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    application = await service.submit_application(db, user, application_id)
    return ok(ApplicationResponse.model_validate(application), "Application submitted")


@router.put(
    "/{application_id}/status",
    response_model=ApiResponse[ApplicationResponse],
    dependencies=[Depends(user_rate_limit("application_status", *RATE_LIMIT_STATUS_UPDATE))],
)
async def update_application_status(
    application_id: UUID,
    data: StatusUpdateRequest,
    officer: CurrentUser = Depends(
        require_permission(Permission.APPLICATIONS_MANAGE_APPLICATIONS.value)
    ),
    db: AsyncSession = Depends(get_db),
):
    application = await service.update_application_status(
        db, officer, application_id, data.status, data.rejection_reason
    )
    return ok(ApplicationResponse.model_validate(application), "Application status updated")


# ============================================
# Personal / travel / financial info
# ============================================


@router.put("/{application_id}/personal-info", response_model=ApiResponse[PersonalInfoResponse])
async def upsert_personal_info(
    application_id: UUID,
    data: PersonalInfoUpsert,
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    info = await service.upsert_personal_info(db, user, application_id, data)
    return ok(PersonalInfoResponse.model_validate(info), "Personal information saved")


@router.get("/{application_id}/personal-info", response_model=ApiResponse[PersonalInfoResponse])
async def get_personal_info(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    info = await service.get_personal_info(db, user, application_id)
    return ok(PersonalInfoResponse.model_validate(info), "Personal information retrieved")


@router.put("/{application_id}/travel-info", response_model=ApiResponse[TravelInfoResponse])
async def upsert_travel_info(
    application_id: UUID,
    data: TravelInfoUpsert,
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    info = await service.upsert_travel_info(db, user, application_id, data)
    return ok(TravelInfoResponse.model_validate(info), "Travel information saved")


@router.get("/{application_id}/travel-info", response_model=ApiResponse[TravelInfoResponse])
async def get_travel_info(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    info = await service.get_travel_info(db, user, application_id)
    return ok(TravelInfoResponse.model_validate(info), "Travel information retrieved")


@router.put("/{application_id}/financial-info", response_model=ApiResponse[ApplicationResponse])
async def update_financial_info(
    application_id: UUID,
    data: FinancialInfoUpdate,
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    application = await service.update_financial_info(db, user, application_id, data)
    return ok(ApplicationResponse.model_validate(application), "Financial information saved")


# ============================================
# Officer notes
# ============================================


@router.get("/{application_id}/notes", response_model=ApiResponse[list[NoteResponse]])
async def list_notes(
    application_id: UUID,
    _officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    notes = await service.list_notes(db, application_id)
    return ok([NoteResponse.model_validate(n) for n in notes], "Notes retrieved")


@router.post(
    "/{application_id}/notes",
    response_model=ApiResponse[NoteResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_note(
    application_id: UUID,
    data: NoteCreate,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    note = await service.add_note(db, officer, application_id, data.content)
    return ok(NoteResponse.model_validate(note), "Note added")


@router.put("/notes/{note_id}", response_model=ApiResponse[NoteResponse])
async def update_note(
    note_id: UUID,
    data: NoteCreate,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    note = await service.update_note(db, officer, note_id, data.content)
    return ok(NoteResponse.model_validate(note), "Note updated")


@router.delete("/notes/{note_id}", response_model=ApiResponse[None])
async def delete_note(
    note_id: UUID,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    await service.delete_note(db, officer, note_id)
    return ApiResponse(message="Note deleted")
