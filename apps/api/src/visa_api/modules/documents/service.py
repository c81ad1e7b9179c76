"""
Document Service Layer

Upload and verification of application documents.

- One document per (application, document type) through this path:
  re-uploading a type overwrites the file metadata in place and resets the
  verification decision.
- Verification is an officer decision recorded on the document; it never
  changes the application's status.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.errors import BadRequestError, ForbiddenError, NotFoundError
from visa_api.modules.applications import repository as application_repository
from visa_api.modules.applications.service import (
    ensure_owner,
    get_application_for_user,
    get_application_or_404,
)
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.documents import repository
from visa_api.modules.documents.models import (
    ALLOWED_DOCUMENT_TYPES,
    Document,
    VerificationStatus,
)
from visa_api.modules.documents.schemas import DocumentUpload
from visa_api.modules.notifications import service as inbox
from visa_api.modules.notifications.models import NotificationType

logger = logging.getLogger(__name__)


class DocumentNotFoundError(NotFoundError):
    def __init__(self, document_id: UUID):
        super().__init__(f"Document {document_id} not found", "DOCUMENT_NOT_FOUND")


class InvalidDocumentTypeError(BadRequestError):
    def __init__(self, document_type: str):
        super().__init__(
            f"Invalid document type '{document_type}'. "
            f"Allowed types: {', '.join(sorted(ALLOWED_DOCUMENT_TYPES))}",
            "INVALID_DOCUMENT_TYPE",
        )


def reset_for_reupload(document: Document, data: DocumentUpload, now: datetime) -> None:
    """Replace the file and clear any earlier verification decision."""
    document.file_name = data.file_name
    document.file_path = data.file_path
    document.file_size = data.file_size
    document.upload_date = now
    document.verification_status = VerificationStatus.PENDING
    document.verified_by = None
    document.verified_at = None
    document.rejection_reason = None


async def upload_document(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
    data: DocumentUpload,
) -> tuple[Document, bool]:
    """
    Attach a document to the caller's application.

    Returns:
        (document, created) where created is False when an existing
        document of the same type was overwritten

    Raises:
        InvalidDocumentTypeError: If the type is not in the allow-list
        ApplicationNotFoundError / ApplicationAccessDeniedError
    """
    if data.document_type not in ALLOWED_DOCUMENT_TYPES:
        raise InvalidDocumentTypeError(data.document_type)

    application = await get_application_or_404(db, application_id)
    ensure_owner(user, application)

    await application_repository.lock(db, application.id)
    existing = await repository.get_by_application_and_type(
        db, application.id, data.document_type
    )
    now = datetime.now(UTC)

    if existing:
        reset_for_reupload(existing, data, now)
        document = existing
        action = "DOCUMENT_UPDATED"
    else:
        document = await repository.create(
            db,
            application_id=application.id,
            document_type=data.document_type,
            file_name=data.file_name,
            file_path=data.file_path,
            file_size=data.file_size,
            upload_date=now,
            verification_status=VerificationStatus.PENDING,
        )
        action = "DOCUMENT_UPLOADED"

    audit(
        db,
        action=action,
        entity_type=AuditEntityType.DOCUMENT,
        entity_id=document.id,
        user_id=user.id,
        user_role=user.role.value,
        details={"application_id": str(application.id), "document_type": data.document_type},
    )
    await db.commit()
    await db.refresh(document)

    logger.info(f"{action}: {data.document_type} for application {application.id}")
    return document, existing is None


async def list_documents(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> list[Document]:
    await get_application_for_user(db, user, application_id)
    return await repository.list_for_application(db, application_id)


async def verify_document(
    db: AsyncSession,
    officer: CurrentUser,
    document_id: UUID,
    is_approved: bool,
    rejection_reason: str | None = None,
) -> Document:
    """
    Record an officer's verification decision on a document.

    Raises:
        ForbiddenError: If the caller is not an officer or admin
        DocumentNotFoundError: If the document doesn't exist
        BadRequestError: If rejecting without a reason
    """
    if not officer.is_staff:
        raise ForbiddenError("Only officers can verify documents")

    document = await repository.get_by_id(db, document_id)
    if not document:
        raise DocumentNotFoundError(document_id)

    if not is_approved and not (rejection_reason and rejection_reason.strip()):
        raise BadRequestError("A rejection reason is required", "REJECTION_REASON_REQUIRED")

    application = await get_application_or_404(db, document.application_id)

    document.verification_status = (
        VerificationStatus.VERIFIED if is_approved else VerificationStatus.REJECTED
    )
    document.verified_by = officer.id
    document.verified_at = datetime.now(UTC)
    document.rejection_reason = None if is_approved else rejection_reason

    if is_approved:
        action = "DOCUMENT_VERIFIED"
        message = f"Your {document.document_type} has been verified successfully."
        notification_type = NotificationType.DOCUMENT_VERIFIED
    else:
        action = "DOCUMENT_REJECTED"
        message = f"Your {document.document_type} was rejected. Reason: {rejection_reason}"
        notification_type = NotificationType.DOCUMENT_REJECTED

    audit(
        db,
        action=action,
        entity_type=AuditEntityType.DOCUMENT,
        entity_id=document.id,
        user_id=officer.id,
        user_role=officer.role.value,
        details={"rejection_reason": document.rejection_reason},
    )
    inbox.push(
        db,
        user_id=application.user_id,
        application_id=application.id,
        type=notification_type,
        title="Document verified" if is_approved else "Document rejected",
        message=message,
    )
    await db.commit()
    await db.refresh(document)

    logger.info(f"{action}: document {document.id} by officer {officer.id}")
    return document
