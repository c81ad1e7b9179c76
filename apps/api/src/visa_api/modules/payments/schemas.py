"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from visa_api.modules.payments.models import PaymentStatus


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    user_id: UUID
    amount: Decimal
    currency: str
    payment_status: PaymentStatus
    provider_payment_id: str | None
    created_at: datetime
    updated_at: datetime


class PaymentIntentResponse(BaseModel):
    """Returned to the client to complete the payment with Stripe.js."""

    payment: PaymentResponse
    client_secret: str


class WebhookAck(BaseModel):
    received: bool = True
    event_type: str | None = None
