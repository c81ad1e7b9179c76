"""
Document Requests Router

Endpoints:
- POST /document-requests/{application_id} - Create (officer/admin)
- GET /document-requests/application/{application_id} - List (owner or staff)
- GET /document-requests/{request_id} - Get (owner or staff)
- PUT /document-requests/{request_id} - Update (requesting officer, SENT only)
- DELETE /document-requests/{request_id} - Cancel (requesting officer, SENT only)
- POST /document-requests/{request_id}/submit - Submit a document (owner)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, get_current_user, require_staff
from visa_api.core.database import get_db
from visa_api.modules.documents import request_service
from visa_api.modules.documents.schemas import (
    DocumentRequestCreate,
    DocumentRequestResponse,
    DocumentRequestUpdate,
    DocumentUpload,
)
from visa_api.modules.shared import ApiResponse, ok

router = APIRouter()


@router.post(
    "/{application_id}",
    response_model=ApiResponse[DocumentRequestResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    application_id: UUID,
    data: DocumentRequestCreate,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.create_request(db, officer, application_id, data)
    return ok(DocumentRequestResponse.model_validate(request), "Document request created")


@router.get(
    "/application/{application_id}",
    response_model=ApiResponse[list[DocumentRequestResponse]],
)
async def list_requests(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    requests = await request_service.list_requests(db, user, application_id)
    return ok(
        [DocumentRequestResponse.model_validate(r) for r in requests],
        "Document requests retrieved",
    )


@router.get("/{request_id}", response_model=ApiResponse[DocumentRequestResponse])
async def get_request(
    request_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.get_request(db, user, request_id)
    return ok(DocumentRequestResponse.model_validate(request), "Document request retrieved")


@router.put("/{request_id}", response_model=ApiResponse[DocumentRequestResponse])
async def update_request(
    request_id: UUID,
    data: DocumentRequestUpdate,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.update_request(db, officer, request_id, data)
    return ok(DocumentRequestResponse.model_validate(request), "Document request updated")


@router.delete("/{request_id}", response_model=ApiResponse[DocumentRequestResponse])
async def cancel_request(
    request_id: UUID,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.cancel_request(db, officer, request_id)
    return ok(DocumentRequestResponse.model_validate(request), "Document request cancelled")


@router.post("/{request_id}/submit", response_model=ApiResponse[DocumentRequestResponse])
async def submit_document_for_request(
    request_id: UUID,
    data: DocumentUpload,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.submit_document_for_request(db, user, request_id, data)
    return ok(DocumentRequestResponse.model_validate(request), "Document submitted for request")
