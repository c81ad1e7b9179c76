"""
Documents Router

Endpoints:
- POST /documents/{application_id} - Upload document metadata (owner)
- GET /documents/{application_id} - List documents (owner or staff)
- PUT /documents/{document_id}/verify - Verify or reject (officer/admin)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, get_current_user, require_staff
from visa_api.core.database import get_db
from visa_api.core.rate_limit import user_rate_limit
from visa_api.modules.documents import service
from visa_api.modules.documents.schemas import (
    DocumentResponse,
    DocumentUpload,
    VerifyDocumentRequest,
)
from visa_api.modules.shared import ApiResponse, ok

router = APIRouter()

RATE_LIMIT_VERIFY = (60, 60)


@router.post("/{application_id}", response_model=ApiResponse[DocumentResponse])
async def upload_document(
    application_id: UUID,
    data: DocumentUpload,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    document, created = await service.upload_document(db, user, application_id, data)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ok(
        DocumentResponse.model_validate(document),
        "Document uploaded" if created else "Document replaced",
    )


@router.get("/{application_id}", response_model=ApiResponse[list[DocumentResponse]])
async def list_documents(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    documents = await service.list_documents(db, user, application_id)
    return ok([DocumentResponse.model_validate(d) for d in documents], "Documents retrieved")


@router.put(
    "/{document_id}/verify",
    response_model=ApiResponse[DocumentResponse],
    dependencies=[Depends(user_rate_limit("document_verify", *RATE_LIMIT_VERIFY))],
)
async def verify_document(
    document_id: UUID,
    data: VerifyDocumentRequest,
    officer: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    document = await service.verify_document(
        db, officer, document_id, data.is_approved, data.rejection_reason
    )
    return ok(
        DocumentResponse.model_validate(document),
        "Document verified" if data.is_approved else "Document rejected",
    )
