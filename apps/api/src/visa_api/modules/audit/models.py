"""
Audit Log Model

Append-only record of who did what to which entity.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from visa_api.core.database import Base


class AuditEntityType(str, Enum):
    VISA_APPLICATION = "VISA_APPLICATION"
    DOCUMENT = "DOCUMENT"
    REQUEST_FOR_DOCUMENT = "REQUEST_FOR_DOCUMENT"
    INTERVIEW = "INTERVIEW"
    PAYMENT = "PAYMENT"
    NOTE = "NOTE"
    USER = "USER"
    MESSAGE = "MESSAGE"


class AuditLog(Base):
    """One audited action. Rows are never updated."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    user_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
