"""
Notifications Router

Endpoints:
- GET /notifications - Caller's notifications, newest first
- POST /notifications/{id}/read - Mark one notification read
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, get_current_user
from visa_api.core.database import get_db
from visa_api.modules.notifications import service
from visa_api.modules.notifications.schemas import NotificationResponse
from visa_api.modules.shared import ApiResponse, ok

router = APIRouter()


@router.get("", response_model=ApiResponse[list[NotificationResponse]])
async def list_notifications(
    unread_only: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notifications = await service.list_notifications(db, user.id, unread_only=unread_only)
    return ok(
        [NotificationResponse.model_validate(n) for n in notifications],
        "Notifications retrieved",
    )


@router.post("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
async def mark_notification_read(
    notification_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await service.mark_read(db, user.id, notification_id)
    return ok(NotificationResponse.model_validate(notification), "Notification marked as read")
