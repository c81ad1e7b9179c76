"""
Interviews Router

Endpoints:
- POST /interviews/{application_id} - Schedule (officer/admin)
- GET /interviews/officer/all - Interviews the caller conducts or scheduled
- GET /interviews/applicant/all - The caller's own interviews
- GET /interviews/application/{application_id} - List for an application
- GET /interviews/{interview_id} - Get one interview
- PUT /interviews/{interview_id}/reschedule - Move an active interview
- PUT /interviews/{interview_id}/complete - Record the outcome
- POST /interviews/{interview_id}/confirm - Applicant confirms attendance
- DELETE /interviews/{interview_id} - Cancel
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import (
    CurrentUser,
    get_current_user,
    require_permission,
    require_roles,
    require_staff,
)
from visa_api.core.database import get_db
from visa_api.modules.interviews import service
from visa_api.modules.interviews.models import InterviewStatus
from visa_api.modules.interviews.schemas import (
    InterviewComplete,
    InterviewCreate,
    InterviewReschedule,
    InterviewResponse,
)
from visa_api.modules.shared import ApiResponse, ok
from visa_api.modules.users.models import Permission, UserRole

router = APIRouter()

require_applicant = require_roles(UserRole.APPLICANT)
require_scheduler = require_permission(Permission.INTERVIEWS_SCHEDULE_INTERVIEWS.value)
require_interviewer = require_permission(Permission.INTERVIEWS_CONDUCT_INTERVIEWS.value)


@router.post(
    "/{application_id}",
    response_model=ApiResponse[InterviewResponse],
    status_code=status.HTTP_201_CREATED,
)
async def schedule_interview(
    application_id: UUID,
    data: InterviewCreate,
    officer: CurrentUser = Depends(require_scheduler),
    db: AsyncSession = Depends(get_db),
):
    interview = await service.schedule_interview(db, officer, application_id, data)
    return ok(InterviewResponse.model_validate(interview), "Interview scheduled")


@router.get("/officer/all", response_model=ApiResponse[list[InterviewResponse]])
async def list_officer_interviews(
    status_filter: InterviewStatus | None = Query(None, alias="status"),
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    interviews = await service.list_for_officer(db, officer, status_filter)
    return ok([InterviewResponse.model_validate(i) for i in interviews], "Interviews retrieved")


@router.get("/applicant/all", response_model=ApiResponse[list[InterviewResponse]])
async def list_applicant_interviews(
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    interviews = await service.list_for_applicant(db, user)
    return ok([InterviewResponse.model_validate(i) for i in interviews], "Interviews retrieved")


@router.get(
    "/application/{application_id}",
    response_model=ApiResponse[list[InterviewResponse]],
)
async def list_application_interviews(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    interviews = await service.list_for_application(db, user, application_id)
    return ok([InterviewResponse.model_validate(i) for i in interviews], "Interviews retrieved")


@router.get("/{interview_id}", response_model=ApiResponse[InterviewResponse])
async def get_interview(
    interview_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    interview = await service.get_interview(db, user, interview_id)
    return ok(InterviewResponse.model_validate(interview), "Interview retrieved")


@router.put("/{interview_id}/reschedule", response_model=ApiResponse[InterviewResponse])
async def reschedule_interview(
    interview_id: UUID,
    data: InterviewReschedule,
    officer: CurrentUser = Depends(require_interviewer),
    db: AsyncSession = Depends(get_db),
):
    interview = await service.reschedule_interview(db, officer, interview_id, data)
    return ok(InterviewResponse.model_validate(interview), "Interview rescheduled")


@router.put("/{interview_id}/complete", response_model=ApiResponse[InterviewResponse])
async def complete_interview(
    interview_id: UUID,
    data: InterviewComplete,
    officer: CurrentUser = Depends(require_interviewer),
    db: AsyncSession = Depends(get_db),
):
    interview = await service.complete_interview(db, officer, interview_id, data)
    return ok(InterviewResponse.model_validate(interview), "Interview marked as completed")


@router.post("/{interview_id}/confirm", response_model=ApiResponse[InterviewResponse])
async def confirm_interview(
    interview_id: UUID,
    user: CurrentUser = Depends(require_applicant),
    db: AsyncSession = Depends(get_db),
):
    interview = await service.confirm_interview(db, user, interview_id)
    return ok(InterviewResponse.model_validate(interview), "Interview confirmed")


@router.delete("/{interview_id}", response_model=ApiResponse[InterviewResponse])
async def cancel_interview(
    interview_id: UUID,
    officer: CurrentUser = Depends(require_scheduler),
    db: AsyncSession = Depends(get_db),
):
    interview = await service.cancel_interview(db, officer, interview_id)
    return ok(InterviewResponse.model_validate(interview), "Interview cancelled")
