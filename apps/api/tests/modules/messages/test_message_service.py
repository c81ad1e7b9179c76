"""
Unit tests for application messages.

These tests cover:
- Recipient selection for applicant and staff senders
- Reply threading within one application
- Recipient-only mark-read and sender-only delete
- Conversation access and unread counts
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from visa_api.core.errors import BadRequestError, ForbiddenError
from visa_api.modules.applications.service import ApplicationAccessDeniedError
from visa_api.modules.messages.models import Message
from visa_api.modules.messages.schemas import MessageCreate
from visa_api.modules.messages.service import (
    delete_message,
    list_messages,
    mark_all_read,
    mark_read,
    send_message,
    unread_count,
)
from visa_api.modules.users.models import UserRole

SERVICE = "visa_api.modules.messages.service"


@pytest.fixture
def assigned_application(application, officer, make_user):
    application.officer_id = officer.id
    application.officer = make_user(
        officer.id, role=UserRole.OFFICER, email=officer.email, name="Kofi Boateng"
    )
    return application


def _message(application_id, sender_id, recipient_id, is_read=False):
    message = MagicMock(spec=Message)
    message.id = uuid4()
    message.application_id = application_id
    message.sender_id = sender_id
    message.recipient_id = recipient_id
    message.is_read = is_read
    return message


def _recording_create(captured: dict):
    async def create(db, **fields):
        captured.update(fields)
        return _message(fields["application_id"], fields["sender_id"], fields["recipient_id"])

    return create


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_applicant_writes_to_assigned_officer(
        self, mock_db, applicant, officer, assigned_application
    ):
        captured = {}
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_new_message", new_callable=AsyncMock) as mock_email,
        ):
            mock_get.return_value = assigned_application
            mock_repo.create = AsyncMock(side_effect=_recording_create(captured))

            await send_message(
                mock_db, applicant, assigned_application.id, MessageCreate(content="Any news?")
            )

            assert captured["sender_id"] == applicant.id
            assert captured["recipient_id"] == officer.id
            assert captured["content"] == "Any news?"
            mock_db.commit.assert_called_once()
            assert mock_email.call_args.kwargs["to_email"] == officer.email

    @pytest.mark.asyncio
    async def test_officer_writes_to_applicant(
        self, mock_db, applicant, officer, assigned_application
    ):
        captured = {}
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_new_message", new_callable=AsyncMock),
        ):
            mock_get.return_value = assigned_application
            mock_repo.create = AsyncMock(side_effect=_recording_create(captured))

            await send_message(
                mock_db,
                officer,
                assigned_application.id,
                MessageCreate(content="Please bring your original passport."),
            )

            assert captured["sender_id"] == officer.id
            assert captured["recipient_id"] == applicant.id

    @pytest.mark.asyncio
    async def test_applicant_needs_an_assigned_officer(self, mock_db, applicant, application):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.create = AsyncMock()

            with pytest.raises(BadRequestError) as exc_info:
                await send_message(mock_db, applicant, application.id, MessageCreate(content="Hi"))

            assert exc_info.value.error_code == "NO_OFFICER_ASSIGNED"
            mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_stranger_cannot_write(self, mock_db, other_applicant, assigned_application):
        with patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = assigned_application

            with pytest.raises(ApplicationAccessDeniedError):
                await send_message(
                    mock_db, other_applicant, assigned_application.id, MessageCreate(content="Hi")
                )

    @pytest.mark.asyncio
    async def test_reply_must_belong_to_same_application(
        self, mock_db, applicant, officer, assigned_application
    ):
        foreign = _message(uuid4(), officer.id, applicant.id)
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = assigned_application
            mock_repo.get_by_id = AsyncMock(return_value=foreign)
            mock_repo.create = AsyncMock()

            with pytest.raises(BadRequestError) as exc_info:
                await send_message(
                    mock_db,
                    applicant,
                    assigned_application.id,
                    MessageCreate(content="Thanks", reply_to_id=foreign.id),
                )

            assert exc_info.value.error_code == "INVALID_REPLY"
            mock_repo.create.assert_not_called()


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_recipient_marks_read(self, mock_db, applicant, officer, application):
        message = _message(application.id, officer.id, applicant.id)
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=message)

            result = await mark_read(mock_db, applicant, message.id)

            assert result.is_read is True
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_sender_cannot_mark_read(self, mock_db, applicant, officer, application):
        message = _message(application.id, officer.id, applicant.id)
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=message)

            with pytest.raises(ForbiddenError):
                await mark_read(mock_db, officer, message.id)
            assert message.is_read is False

    @pytest.mark.asyncio
    async def test_mark_all_read_for_caller_only(self, mock_db, applicant, application):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.mark_all_read = AsyncMock(return_value=3)

            assert await mark_all_read(mock_db, applicant, application.id) == 3
            mock_repo.mark_all_read.assert_called_once_with(mock_db, applicant.id, application.id)
            mock_db.commit.assert_called_once()


class TestDeleteMessage:
    @pytest.mark.asyncio
    async def test_sender_deletes(self, mock_db, applicant, officer, application):
        message = _message(application.id, applicant.id, officer.id)
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.audit") as mock_audit,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=message)
            mock_repo.delete = AsyncMock()

            await delete_message(mock_db, applicant, message.id)

            mock_repo.delete.assert_called_once_with(mock_db, message)
            assert mock_audit.call_args.kwargs["action"] == "MESSAGE_DELETED"
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_recipient_cannot_delete(self, mock_db, applicant, officer, application):
        message = _message(application.id, applicant.id, officer.id)
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=message)
            mock_repo.delete = AsyncMock()

            with pytest.raises(ForbiddenError):
                await delete_message(mock_db, officer, message.id)
            mock_repo.delete.assert_not_called()


class TestReadingConversation:
    @pytest.mark.asyncio
    async def test_owner_lists_conversation(self, mock_db, applicant, application):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.list_for_application = AsyncMock(return_value=([], 0))

            assert await list_messages(mock_db, applicant, application.id) == ([], 0)

    @pytest.mark.asyncio
    async def test_stranger_cannot_list(self, mock_db, other_applicant, application):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.list_for_application = AsyncMock()

            with pytest.raises(ApplicationAccessDeniedError):
                await list_messages(mock_db, other_applicant, application.id)
            mock_repo.list_for_application.assert_not_called()

    @pytest.mark.asyncio
    async def test_unread_count_is_scoped_to_caller(self, mock_db, officer, application):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.count_unread = AsyncMock(return_value=2)

            assert await unread_count(mock_db, officer, application.id) == 2
            mock_repo.count_unread.assert_called_once_with(mock_db, officer.id, application.id)
