"""Unit tests for the in-app notification service."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from visa_api.core.errors import ForbiddenError, NotFoundError
from visa_api.modules.notifications.models import Notification, NotificationType
from visa_api.modules.notifications.service import mark_read, push

SERVICE = "visa_api.modules.notifications.service"


def _notification(user_id, is_read=False):
    notification = MagicMock(spec=Notification)
    notification.id = uuid4()
    notification.user_id = user_id
    notification.is_read = is_read
    return notification


class TestPush:
    def test_stages_unread_notification(self, mock_db, applicant):
        notification = push(
            mock_db,
            user_id=applicant.id,
            type=NotificationType.STATUS_CHANGED,
            title="Status updated",
            message="Your application is under review",
        )

        assert notification.is_read is False
        mock_db.add.assert_called_once_with(notification)
        mock_db.commit.assert_not_called()


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_owner_marks_read(self, mock_db, applicant):
        notification = _notification(applicant.id)
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=notification)

            result = await mark_read(mock_db, applicant.id, notification.id)

            assert result.is_read is True
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_other_user_cannot_mark_read(self, mock_db, applicant, other_applicant):
        notification = _notification(applicant.id)
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=notification)

            with pytest.raises(ForbiddenError):
                await mark_read(mock_db, other_applicant.id, notification.id)

            assert notification.is_read is False
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_read_is_noop(self, mock_db, applicant):
        notification = _notification(applicant.id, is_read=True)
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=notification)

            await mark_read(mock_db, applicant.id, notification.id)

            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_notification(self, mock_db, applicant):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await mark_read(mock_db, applicant.id, uuid4())
