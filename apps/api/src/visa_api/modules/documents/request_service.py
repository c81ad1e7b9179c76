"""
Document Request Workflow

An officer asks the applicant for an additional named document; the
applicant answers by submitting a document against the request.

    SENT -> SUBMITTED   (applicant submits; terminal)
    SENT -> CANCELLED   (requesting officer cancels; terminal)

Every transition out of SENT is a conditional UPDATE on status = SENT, so
a concurrent cancel and submit cannot both succeed. On submit, the new
Document row and the request's status change commit together.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.email import (
    send_document_request_cancelled,
    send_document_request_created,
    send_document_request_fulfilled,
)
from visa_api.core.errors import BadRequestError, ForbiddenError, NotFoundError
from visa_api.core.notifier import notify
from visa_api.modules.applications.service import (
    ensure_can_view,
    ensure_owner,
    get_application_or_404,
)
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.documents import repository
from visa_api.modules.documents.models import (
    DocumentRequest,
    DocumentRequestStatus,
    VerificationStatus,
)
from visa_api.modules.documents.schemas import (
    DocumentRequestCreate,
    DocumentRequestUpdate,
    DocumentUpload,
)
from visa_api.modules.notifications import service as inbox
from visa_api.modules.notifications.models import NotificationType

logger = logging.getLogger(__name__)


class DocumentRequestNotFoundError(NotFoundError):
    def __init__(self, request_id: UUID):
        super().__init__(f"Document request {request_id} not found", "DOCUMENT_REQUEST_NOT_FOUND")


class InvalidRequestStateError(BadRequestError):
    def __init__(self, message: str):
        super().__init__(message, "INVALID_REQUEST_STATE")


async def _get_request_or_404(db: AsyncSession, request_id: UUID) -> DocumentRequest:
    request = await repository.get_request(db, request_id)
    if not request:
        raise DocumentRequestNotFoundError(request_id)
    return request


def _ensure_requesting_officer(officer: CurrentUser, request: DocumentRequest) -> None:
    if request.officer_id != officer.id:
        logger.warning(f"Officer {officer.id} is not the author of request {request.id}")
        raise ForbiddenError(
            "Only the officer who created this request can modify it", "NOT_REQUEST_OWNER"
        )


async def create_request(
    db: AsyncSession,
    officer: CurrentUser,
    application_id: UUID,
    data: DocumentRequestCreate,
) -> DocumentRequest:
    """Open a request (SENT) for an additional document and email the applicant."""
    if not officer.is_staff:
        raise ForbiddenError("Only officers can request documents")

    application = await get_application_or_404(db, application_id)

    request = await repository.create_request(
        db,
        application_id=application.id,
        officer_id=officer.id,
        document_name=data.document_name,
        additional_details=data.additional_details,
    )
    audit(
        db,
        action="DOCUMENT_REQUEST_CREATED",
        entity_type=AuditEntityType.REQUEST_FOR_DOCUMENT,
        entity_id=request.id,
        user_id=officer.id,
        user_role=officer.role.value,
        details={"application_id": str(application.id), "document_name": data.document_name},
    )
    inbox.push(
        db,
        user_id=application.user_id,
        application_id=application.id,
        type=NotificationType.DOCUMENT_REQUESTED,
        title="Additional document requested",
        message=(
            f"An officer has requested '{data.document_name}' "
            f"for application {application.application_number}."
        ),
    )
    await db.commit()
    await db.refresh(request)

    logger.info(f"Document request {request.id} created on application {application.id}")

    applicant = application.applicant
    notify(
        send_document_request_created(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            application_id=str(application.id),
            document_name=data.document_name,
            additional_details=data.additional_details,
        ),
        f"document request email for request {request.id}",
    )
    return request


async def list_requests(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> list[DocumentRequest]:
    application = await get_application_or_404(db, application_id)
    ensure_can_view(user, application)
    return await repository.list_requests(db, application_id)


async def get_request(db: AsyncSession, user: CurrentUser, request_id: UUID) -> DocumentRequest:
    request = await _get_request_or_404(db, request_id)
    ensure_can_view(user, request.application)
    return request


async def update_request(
    db: AsyncSession,
    officer: CurrentUser,
    request_id: UUID,
    data: DocumentRequestUpdate,
) -> DocumentRequest:
    """Edit an open request. Requesting officer only, while SENT."""
    request = await _get_request_or_404(db, request_id)
    _ensure_requesting_officer(officer, request)

    if request.status != DocumentRequestStatus.SENT:
        raise InvalidRequestStateError(
            "Cannot update a request that has been submitted or cancelled"
        )

    values = data.model_dump(exclude_unset=True)
    if values and not await repository.update_open_request(db, request.id, **values):
        await db.rollback()
        raise InvalidRequestStateError(
            "Cannot update a request that has been submitted or cancelled"
        )

    audit(
        db,
        action="DOCUMENT_REQUEST_UPDATED",
        entity_type=AuditEntityType.REQUEST_FOR_DOCUMENT,
        entity_id=request.id,
        user_id=officer.id,
        user_role=officer.role.value,
        details=values,
    )
    await db.commit()
    await db.refresh(request)
    return request


async def cancel_request(
    db: AsyncSession,
    officer: CurrentUser,
    request_id: UUID,
) -> DocumentRequest:
    """
    Cancel an open request and tell the applicant.

    Raises:
        InvalidRequestStateError: If the request was already submitted or cancelled
    """
    request = await _get_request_or_404(db, request_id)
    _ensure_requesting_officer(officer, request)

    if request.status == DocumentRequestStatus.SUBMITTED:
        raise InvalidRequestStateError("Cannot cancel a request that has been submitted")
    if request.status == DocumentRequestStatus.CANCELLED:
        raise InvalidRequestStateError("Request is already cancelled")

    if not await repository.update_open_request(
        db, request.id, status=DocumentRequestStatus.CANCELLED
    ):
        await db.rollback()
        raise InvalidRequestStateError("Request is no longer open")

    audit(
        db,
        action="DOCUMENT_REQUEST_CANCELLED",
        entity_type=AuditEntityType.REQUEST_FOR_DOCUMENT,
        entity_id=request.id,
        user_id=officer.id,
        user_role=officer.role.value,
    )
    await db.commit()
    await db.refresh(request)

    logger.info(f"Document request {request.id} cancelled by officer {officer.id}")

    application = request.application
    applicant = application.applicant
    notify(
        send_document_request_cancelled(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            document_name=request.document_name,
        ),
        f"cancellation email for request {request.id}",
    )
    return request


async def submit_document_for_request(
    db: AsyncSession,
    user: CurrentUser,
    request_id: UUID,
    data: DocumentUpload,
) -> DocumentRequest:
    """
    Answer a request with a new document.

    Always inserts a new Document (no overwrite by type) and links it to
    the request, which becomes SUBMITTED. Both writes commit together.

    Raises:
        InvalidRequestStateError: If the request is cancelled or already answered
    """
    request = await _get_request_or_404(db, request_id)
    application = request.application
    ensure_owner(user, application)

    if request.status == DocumentRequestStatus.CANCELLED:
        raise InvalidRequestStateError("Cannot submit document for a cancelled request")
    if request.status == DocumentRequestStatus.SUBMITTED:
        raise InvalidRequestStateError("Document has already been submitted for this request")

    document = await repository.create(
        db,
        application_id=application.id,
        document_type=data.document_type,
        file_name=data.file_name,
        file_path=data.file_path,
        file_size=data.file_size,
        upload_date=datetime.now(UTC),
        verification_status=VerificationStatus.PENDING,
    )

    if not await repository.update_open_request(
        db,
        request.id,
        status=DocumentRequestStatus.SUBMITTED,
        document_id=document.id,
    ):
        # Discards the document inserted above
        await db.rollback()
        logger.warning(f"Request {request_id} left SENT before submission completed")
        raise InvalidRequestStateError("This request is no longer open for submissions")

    audit(
        db,
        action="DOCUMENT_SUBMITTED_FOR_REQUEST",
        entity_type=AuditEntityType.REQUEST_FOR_DOCUMENT,
        entity_id=request.id,
        user_id=user.id,
        user_role=user.role.value,
        details={"document_id": str(document.id), "file_name": data.file_name},
    )
    await db.commit()
    await db.refresh(request)

    logger.info(f"Document {document.id} submitted for request {request.id}")

    officer = request.officer
    notify(
        send_document_request_fulfilled(
            to_email=officer.email,
            officer_name=officer.full_name,
            application_number=application.application_number,
            application_id=str(application.id),
            document_name=request.document_name,
        ),
        f"fulfilment email for request {request.id}",
    )
    return request
