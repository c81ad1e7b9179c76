"""
Document Repository

Persistence for documents and document requests. The service layer commits.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Document, DocumentRequest, DocumentRequestStatus


async def get_by_id(db: AsyncSession, id: UUID) -> Document | None:
    return await db.get(Document, id)


async def get_by_application_and_type(
    db: AsyncSession,
    application_id: UUID,
    document_type: str,
) -> Document | None:
    result = await db.execute(
        select(Document)
        .where(Document.application_id == application_id, Document.document_type == document_type)
        .order_by(Document.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_for_application(db: AsyncSession, application_id: UUID) -> list[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.application_id == application_id)
        .order_by(Document.upload_date.desc())
    )
    return list(result.scalars().all())


async def create(db: AsyncSession, **fields: Any) -> Document:
    document = Document(**fields)
    db.add(document)
    await db.flush()
    await db.refresh(document)
    return document


# ============================================
# Document requests
# ============================================


async def get_request(db: AsyncSession, id: UUID) -> DocumentRequest | None:
    return await db.get(DocumentRequest, id)


async def list_requests(db: AsyncSession, application_id: UUID) -> list[DocumentRequest]:
    result = await db.execute(
        select(DocumentRequest)
        .where(DocumentRequest.application_id == application_id)
        .order_by(DocumentRequest.created_at.desc())
    )
    return list(result.scalars().all())


async def create_request(db: AsyncSession, **fields: Any) -> DocumentRequest:
    request = DocumentRequest(status=DocumentRequestStatus.SENT, **fields)
    db.add(request)
    await db.flush()
    await db.refresh(request)
    return request


async def update_open_request(db: AsyncSession, id: UUID, **values: Any) -> bool:
    """
    Update a request only while it is still SENT.

    Returns:
        True if the row was updated, False if it had already left SENT
    """
    result = await db.execute(
        update(DocumentRequest)
        .where(DocumentRequest.id == id, DocumentRequest.status == DocumentRequestStatus.SENT)
        .values(**values)
    )
    return result.rowcount == 1
