"""
Unit tests for document upload and verification.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from visa_api.core.errors import BadRequestError, ForbiddenError
from visa_api.modules.applications.service import ApplicationAccessDeniedError
from visa_api.modules.documents.models import VerificationStatus
from visa_api.modules.documents.schemas import DocumentUpload
from visa_api.modules.documents.service import (
    DocumentNotFoundError,
    InvalidDocumentTypeError,
    upload_document,
    verify_document,
)

SERVICE = "visa_api.modules.documents.service"


class TestUploadDocument:
    """Tests for upload_document."""

    @pytest.mark.asyncio
    async def test_first_upload_creates_document(
        self, mock_db, applicant, application, upload, document
    ):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_app_repo.lock = AsyncMock()
            mock_repo.get_by_application_and_type = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=document)

            result, created = await upload_document(mock_db, applicant, application.id, upload)

            assert created is True
            assert result is document
            mock_app_repo.lock.assert_called_once_with(mock_db, application.id)
            kwargs = mock_repo.create.call_args.kwargs
            assert kwargs["document_type"] == "passportCopy"
            assert kwargs["verification_status"] == VerificationStatus.PENDING
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_reupload_overwrites_and_resets_verification(
        self, mock_db, applicant, application, upload, document
    ):
        """Uploading the same type again replaces the file and clears the decision."""
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_app_repo.lock = AsyncMock()
            mock_repo.get_by_application_and_type = AsyncMock(return_value=document)
            mock_repo.create = AsyncMock()

            result, created = await upload_document(mock_db, applicant, application.id, upload)

            assert created is False
            assert result is document
            mock_repo.create.assert_not_called()
            assert document.file_name == "passport.pdf"
            assert document.file_size == 204800
            assert document.verification_status == VerificationStatus.PENDING
            assert document.verified_by is None
            assert document.verified_at is None
            assert document.rejection_reason is None

    @pytest.mark.asyncio
    async def test_unknown_document_type(self, mock_db, applicant, application):
        data = DocumentUpload(
            document_type="selfie",
            file_name="me.png",
            file_path="uploads/me.png",
            file_size=10,
        )
        with pytest.raises(InvalidDocumentTypeError):
            await upload_document(mock_db, applicant, application.id, data)

    @pytest.mark.asyncio
    async def test_only_owner_uploads(self, mock_db, other_applicant, application, upload):
        with patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = application

            with pytest.raises(ApplicationAccessDeniedError):
                await upload_document(mock_db, other_applicant, application.id, upload)


class TestVerifyDocument:
    """Tests for verify_document."""

    @pytest.mark.asyncio
    async def test_verify(self, mock_db, officer, application, document):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.get_by_id = AsyncMock(return_value=document)

            result = await verify_document(mock_db, officer, document.id, is_approved=True)

            assert result.verification_status == VerificationStatus.VERIFIED
            assert result.verified_by == officer.id
            assert result.rejection_reason is None
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_reject_records_reason(self, mock_db, officer, application, document):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.inbox") as mock_inbox,
        ):
            mock_get.return_value = application
            mock_repo.get_by_id = AsyncMock(return_value=document)

            result = await verify_document(
                mock_db, officer, document.id, is_approved=False, rejection_reason="Expired"
            )

            assert result.verification_status == VerificationStatus.REJECTED
            assert result.rejection_reason == "Expired"
            message = mock_inbox.push.call_args.kwargs["message"]
            assert message == "Your passportCopy was rejected. Reason: Expired"

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, mock_db, officer, document):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=document)

            with pytest.raises(BadRequestError):
                await verify_document(mock_db, officer, document.id, is_approved=False)

    @pytest.mark.asyncio
    async def test_applicant_cannot_verify(self, mock_db, applicant):
        with pytest.raises(ForbiddenError):
            await verify_document(mock_db, applicant, uuid4(), is_approved=True)

    @pytest.mark.asyncio
    async def test_missing_document(self, mock_db, officer):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(DocumentNotFoundError):
                await verify_document(mock_db, officer, uuid4(), is_approved=True)
