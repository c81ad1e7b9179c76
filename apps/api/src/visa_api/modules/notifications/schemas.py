"""In-app notification schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from visa_api.modules.notifications.models import NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID | None
    type: NotificationType
    title: str
    message: str
    is_read: bool
    created_at: datetime
