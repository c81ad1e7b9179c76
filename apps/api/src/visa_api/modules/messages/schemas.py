"""Message schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    reply_to_id: UUID | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    sender_id: UUID
    recipient_id: UUID
    reply_to_id: UUID | None
    content: str
    is_read: bool
    created_at: datetime


class UnreadCount(BaseModel):
    count: int


class MarkedRead(BaseModel):
    updated: int
