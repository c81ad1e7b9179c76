"""
Payment Repository
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Payment, PaymentStatus


async def get_by_id(db: AsyncSession, id: UUID) -> Payment | None:
    return await db.get(Payment, id)


async def list_for_application(db: AsyncSession, application_id: UUID) -> list[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.application_id == application_id)
        .order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def get_completed_for_application(
    db: AsyncSession,
    application_id: UUID,
    exclude_id: UUID | None = None,
) -> Payment | None:
    query = select(Payment).where(
        Payment.application_id == application_id,
        Payment.payment_status == PaymentStatus.COMPLETED,
    )
    if exclude_id is not None:
        query = query.where(Payment.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def get_by_provider_id(db: AsyncSession, provider_payment_id: str) -> Payment | None:
    result = await db.execute(
        select(Payment).where(Payment.provider_payment_id == provider_payment_id)
    )
    return result.scalar_one_or_none()


async def create(db: AsyncSession, **fields: Any) -> Payment:
    payment = Payment(payment_status=PaymentStatus.PENDING, **fields)
    db.add(payment)
    await db.flush()
    await db.refresh(payment)
    return payment


async def mark(
    db: AsyncSession,
    id: UUID,
    new_status: PaymentStatus,
    *,
    unless: PaymentStatus = PaymentStatus.COMPLETED,
) -> bool:
    """
    Set payment_status unless the row is already in `unless` (or new_status).

    Returns:
        True if the row changed, False for a replayed or superseded event
    """
    result = await db.execute(
        update(Payment)
        .where(
            Payment.id == id,
            Payment.payment_status.not_in((unless, new_status)),
        )
        .values(payment_status=new_status)
    )
    return result.rowcount == 1
