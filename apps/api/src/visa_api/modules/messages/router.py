"""
Messages Router

Endpoints:
- POST /messages/{application_id} - Send a message
- GET /messages/application/{application_id} - Conversation, oldest first
- POST /messages/application/{application_id}/read-all - Mark received messages read
- GET /messages/unread-count - Caller's unread messages
- POST /messages/{message_id}/read - Mark one message read
- DELETE /messages/{message_id} - Delete a message the caller sent
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, get_current_user
from visa_api.core.database import get_db
from visa_api.core.rate_limit import user_rate_limit
from visa_api.modules.messages import service
from visa_api.modules.messages.schemas import (
    MarkedRead,
    MessageCreate,
    MessageResponse,
    UnreadCount,
)
from visa_api.modules.shared import ApiResponse, ok

router = APIRouter()


@router.get("/unread-count", response_model=ApiResponse[UnreadCount])
async def unread_count(
    application_id: UUID | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await service.unread_count(db, user, application_id)
    return ok(UnreadCount(count=count), "Unread count retrieved")


@router.get("/application/{application_id}", response_model=ApiResponse[list[MessageResponse]])
async def list_messages(
    application_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    messages, total = await service.list_messages(
        db, user, application_id, limit=limit, offset=offset
    )
    return ok(
        [MessageResponse.model_validate(m) for m in messages],
        f"Retrieved {len(messages)} of {total} messages",
    )


@router.post("/application/{application_id}/read-all", response_model=ApiResponse[MarkedRead])
async def mark_all_read(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await service.mark_all_read(db, user, application_id)
    return ok(MarkedRead(updated=updated), "Messages marked as read")


@router.post(
    "/{application_id}",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(user_rate_limit("send_message", limit=30, window_seconds=60))],
)
async def send_message(
    application_id: UUID,
    data: MessageCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await service.send_message(db, user, application_id, data)
    return ok(MessageResponse.model_validate(message), "Message sent")


@router.post("/{message_id}/read", response_model=ApiResponse[MessageResponse])
async def mark_message_read(
    message_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await service.mark_read(db, user, message_id)
    return ok(MessageResponse.model_validate(message), "Message marked as read")


@router.delete("/{message_id}", response_model=ApiResponse[None])
async def delete_message(
    message_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await service.delete_message(db, user, message_id)
    return ok(None, "Message deleted")
