"""Message persistence. Functions flush at most; callers commit."""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.modules.messages.models import Message


async def get_by_id(db: AsyncSession, message_id: UUID) -> Message | None:
    return await db.get(Message, message_id)


async def create(db: AsyncSession, **fields) -> Message:
    message = Message(is_read=False, **fields)
    db.add(message)
    await db.flush()
    await db.refresh(message)
    return message


async def list_for_application(
    db: AsyncSession,
    application_id: UUID,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Message], int]:
    total = await db.scalar(
        select(func.count()).select_from(Message).where(Message.application_id == application_id)
    )
    result = await db.execute(
        select(Message)
        .where(Message.application_id == application_id)
        .order_by(Message.created_at, Message.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total or 0


async def mark_all_read(db: AsyncSession, recipient_id: UUID, application_id: UUID) -> int:
    result = await db.execute(
        update(Message)
        .where(
            Message.recipient_id == recipient_id,
            Message.application_id == application_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    )
    return result.rowcount


async def count_unread(
    db: AsyncSession,
    recipient_id: UUID,
    application_id: UUID | None = None,
) -> int:
    query = (
        select(func.count())
        .select_from(Message)
        .where(Message.recipient_id == recipient_id, Message.is_read.is_(False))
    )
    if application_id is not None:
        query = query.where(Message.application_id == application_id)
    return await db.scalar(query) or 0


async def delete(db: AsyncSession, message: Message) -> None:
    await db.delete(message)
    await db.flush()
