"""
Message Service

Applicants write to the officer assigned to their application; staff
write to the applicant. Only the recipient can mark a message read and
only the sender can delete it. The recipient is emailed after commit.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.email import send_new_message
from visa_api.core.errors import BadRequestError, ForbiddenError, NotFoundError
from visa_api.core.notifier import notify
from visa_api.modules.applications.service import ensure_can_view, get_application_or_404
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.messages import repository
from visa_api.modules.messages.models import Message
from visa_api.modules.messages.schemas import MessageCreate

logger = logging.getLogger(__name__)


async def _get_message_or_404(db: AsyncSession, message_id: UUID) -> Message:
    message = await repository.get_by_id(db, message_id)
    if not message:
        raise NotFoundError("Message not found", "MESSAGE_NOT_FOUND")
    return message


async def send_message(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
    data: MessageCreate,
) -> Message:
    """
    Post a message on the application's conversation.

    Raises:
        BadRequestError: If an applicant writes before an officer is assigned,
            or reply_to_id belongs to another application
    """
    application = await get_application_or_404(db, application_id)
    ensure_can_view(user, application)

    if user.is_staff and application.user_id != user.id:
        recipient = application.applicant
    else:
        if application.officer_id is None:
            raise BadRequestError(
                "No officer is assigned to this application yet", "NO_OFFICER_ASSIGNED"
            )
        recipient = application.officer

    if data.reply_to_id is not None:
        parent = await repository.get_by_id(db, data.reply_to_id)
        if not parent or parent.application_id != application.id:
            raise BadRequestError(
                "Replied-to message is not part of this conversation", "INVALID_REPLY"
            )

    message = await repository.create(
        db,
        application_id=application.id,
        sender_id=user.id,
        recipient_id=recipient.id,
        reply_to_id=data.reply_to_id,
        content=data.content,
    )
    audit(
        db,
        action="MESSAGE_SENT",
        entity_type=AuditEntityType.MESSAGE,
        entity_id=message.id,
        user_id=user.id,
        user_role=user.role.value,
        details={"application_id": str(application.id), "recipient_id": str(recipient.id)},
    )
    await db.commit()
    await db.refresh(message)

    logger.info(f"Message {message.id} sent on application {application.id}")
    notify(
        send_new_message(
            to_email=recipient.email,
            recipient_name=recipient.full_name,
            sender_name=user.name or user.email,
            application_number=application.application_number,
            application_id=str(application.id),
        ),
        f"new message email for message {message.id}",
    )
    return message


async def list_messages(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Message], int]:
    application = await get_application_or_404(db, application_id)
    ensure_can_view(user, application)
    return await repository.list_for_application(db, application.id, limit=limit, offset=offset)


async def mark_read(db: AsyncSession, user: CurrentUser, message_id: UUID) -> Message:
    message = await _get_message_or_404(db, message_id)
    if message.recipient_id != user.id:
        raise ForbiddenError("Only the recipient can mark a message as read")

    if not message.is_read:
        message.is_read = True
        await db.commit()
        await db.refresh(message)
    return message


async def mark_all_read(db: AsyncSession, user: CurrentUser, application_id: UUID) -> int:
    application = await get_application_or_404(db, application_id)
    ensure_can_view(user, application)

    updated = await repository.mark_all_read(db, user.id, application.id)
    await db.commit()
    return updated


async def unread_count(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID | None = None,
) -> int:
    return await repository.count_unread(db, user.id, application_id)


async def delete_message(db: AsyncSession, user: CurrentUser, message_id: UUID) -> None:
    message = await _get_message_or_404(db, message_id)
    if message.sender_id != user.id:
        raise ForbiddenError("You can only delete messages you sent")

    await repository.delete(db, message)
    audit(
        db,
        action="MESSAGE_DELETED",
        entity_type=AuditEntityType.MESSAGE,
        entity_id=message.id,
        user_id=user.id,
        user_role=user.role.value,
    )
    await db.commit()
