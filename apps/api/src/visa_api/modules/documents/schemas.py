"""
Document Schemas

Pydantic schemas for document uploads, verification and document requests.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from visa_api.modules.documents.models import DocumentRequestStatus, VerificationStatus

MAX_FILE_SIZE_BYTES = 20 * 1024 * 1024


class DocumentUpload(BaseModel):
    """Metadata for a file already stored by the upload service."""

    document_type: str = Field(..., min_length=1, max_length=100)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1024)
    file_size: int = Field(..., gt=0, le=MAX_FILE_SIZE_BYTES)


class VerifyDocumentRequest(BaseModel):
    is_approved: bool
    rejection_reason: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _reason_required_when_rejecting(self) -> "VerifyDocumentRequest":
        if not self.is_approved and not (self.rejection_reason and self.rejection_reason.strip()):
            raise ValueError("rejection_reason is required when rejecting a document")
        return self


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    document_type: str
    file_name: str
    file_path: str
    file_size: int
    upload_date: datetime
    verification_status: VerificationStatus
    verified_by: UUID | None
    verified_at: datetime | None
    rejection_reason: str | None


class DocumentRequestCreate(BaseModel):
    document_name: str = Field(..., min_length=1, max_length=200)
    additional_details: str | None = Field(None, max_length=2000)


class DocumentRequestUpdate(BaseModel):
    document_name: str | None = Field(None, min_length=1, max_length=200)
    additional_details: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _document_name_not_null(self) -> "DocumentRequestUpdate":
        if "document_name" in self.model_fields_set and self.document_name is None:
            raise ValueError("document_name cannot be null")
        return self


class DocumentRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    officer_id: UUID
    document_name: str
    additional_details: str | None
    status: DocumentRequestStatus
    document_id: UUID | None
    document: DocumentResponse | None = None
    created_at: datetime
    updated_at: datetime
