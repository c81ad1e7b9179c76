"""
Payment Models

One Payment row per processor intent. An application may accumulate
several (abandoned or failed attempts) but at most one should complete.
"""

import enum
import uuid
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visa_api.modules.applications.models import VisaApplication
from visa_api.modules.shared.models import BaseModel


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Payment(BaseModel):
    """Visa fee payment. provider_payment_id is the Stripe PaymentIntent id."""

    __tablename__ = "payments"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    provider_payment_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )

    application: Mapped[VisaApplication] = relationship(VisaApplication, lazy="selectin")

    def __repr__(self) -> str:
        return f"<Payment({self.id}, {self.payment_status.value}, {self.amount} {self.currency})>"
