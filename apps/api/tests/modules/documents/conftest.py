"""
Fixtures for document and document request tests.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from visa_api.modules.documents.models import (
    Document,
    DocumentRequest,
    DocumentRequestStatus,
    VerificationStatus,
)
from visa_api.modules.documents.schemas import DocumentUpload
from visa_api.modules.users.models import UserRole


@pytest.fixture
def upload():
    return DocumentUpload(
        document_type="passportCopy",
        file_name="passport.pdf",
        file_path="uploads/passport.pdf",
        file_size=204800,
    )


@pytest.fixture
def document(application):
    doc = MagicMock(spec=Document)
    doc.id = uuid4()
    doc.application_id = application.id
    doc.document_type = "passportCopy"
    doc.file_name = "old.pdf"
    doc.file_path = "uploads/old.pdf"
    doc.file_size = 1024
    doc.upload_date = datetime(2026, 1, 1, tzinfo=UTC)
    doc.verification_status = VerificationStatus.REJECTED
    doc.verified_by = uuid4()
    doc.verified_at = datetime(2026, 1, 2, tzinfo=UTC)
    doc.rejection_reason = "Blurry scan"
    return doc


@pytest.fixture
def document_request(application, officer, make_user):
    request = MagicMock(spec=DocumentRequest)
    request.id = uuid4()
    request.application_id = application.id
    request.application = application
    request.officer_id = officer.id
    request.officer = make_user(officer.id, role=UserRole.OFFICER, email=officer.email)
    request.document_name = "Bank statement"
    request.additional_details = "Last three months"
    request.status = DocumentRequestStatus.SENT
    request.document_id = None
    return request
