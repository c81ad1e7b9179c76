"""
Document Models

Uploaded document metadata and officer-initiated requests for additional
documents. File bytes live in external storage; only path, name and size
are kept here.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visa_api.modules.applications.models import VisaApplication
from visa_api.modules.shared.models import BaseModel
from visa_api.modules.users.models import User

# Document types accepted by the regular upload endpoint. Re-uploading a
# type replaces the previous file for that application.
ALLOWED_DOCUMENT_TYPES = frozenset(
    {
        "passportCopy",
        "photos",
        "yellowFeverCertificate",
        "travelInsurance",
        "invitationLetter",
        "employmentContract",
        "workPermit",
        "admissionLetter",
        "academicTranscripts",
        "criminalRecord",
        "medicalCertificate",
        "onwardTicket",
        "finalDestinationVisa",
    }
)


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class DocumentRequestStatus(str, enum.Enum):
    """SENT is the only open state; SUBMITTED and CANCELLED are terminal."""

    SENT = "SENT"
    SUBMITTED = "SUBMITTED"
    CANCELLED = "CANCELLED"


class Document(BaseModel):
    __tablename__ = "documents"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus, name="verification_status"),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verified_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_documents_application_type", "application_id", "document_type"),)

    def __repr__(self) -> str:
        return f"<Document({self.document_type}, status={self.verification_status.value})>"


class DocumentRequest(BaseModel):
    """An officer's request for an additional document on an application."""

    __tablename__ = "document_requests"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_name: Mapped[str] = mapped_column(String(200), nullable=False)
    additional_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[DocumentRequestStatus] = mapped_column(
        Enum(DocumentRequestStatus, name="document_request_status"),
        nullable=False,
        default=DocumentRequestStatus.SENT,
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="SET NULL"),
        nullable=True,
    )

    application: Mapped[VisaApplication] = relationship(VisaApplication, lazy="selectin")
    officer: Mapped[User] = relationship(User, lazy="selectin")
    document: Mapped[Document | None] = relationship(Document, lazy="selectin")
