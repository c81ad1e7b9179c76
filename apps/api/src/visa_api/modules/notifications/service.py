"""
In-App Notification Service

`push` stages a Notification in the caller's transaction; the listing
and mark-read operations back the notification centre endpoints.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.errors import ForbiddenError, NotFoundError
from visa_api.modules.notifications import repository
from visa_api.modules.notifications.models import Notification, NotificationType

logger = logging.getLogger(__name__)


def push(
    db: AsyncSession,
    *,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    application_id: UUID | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        application_id=application_id,
        type=type,
        title=title,
        message=message,
        is_read=False,
    )
    db.add(notification)
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: UUID,
    unread_only: bool = False,
) -> list[Notification]:
    return await repository.list_for_user(db, user_id, unread_only=unread_only)


async def mark_read(db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification:
    notification = await repository.get_by_id(db, notification_id)
    if not notification:
        raise NotFoundError("Notification not found", "NOTIFICATION_NOT_FOUND")
    if notification.user_id != user_id:
        raise ForbiddenError("You can only read your own notifications")

    if not notification.is_read:
        notification.is_read = True
        await db.commit()
        await db.refresh(notification)
    return notification
