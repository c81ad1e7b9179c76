"""
Payments Router

Endpoints:
- POST /payments/webhook - Stripe webhook (signature-verified, no JWT)
- POST /payments/{application_id}/intent - Start paying the visa fee (owner)
- GET /payments/application/{application_id} - Payment attempts for an application
- GET /payments/{payment_id} - Get a payment (owner or staff)
- POST /payments/{payment_id}/confirm - Re-check the intent with Stripe (owner)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser, get_current_user
from visa_api.core.database import get_db
from visa_api.core.rate_limit import user_rate_limit
from visa_api.modules.payments import service
from visa_api.modules.payments.schemas import (
    PaymentIntentResponse,
    PaymentResponse,
    WebhookAck,
)
from visa_api.modules.shared import ApiResponse, ok

router = APIRouter()


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
):
    payload = await request.body()
    event_type = await service.handle_webhook(db, payload, stripe_signature)
    return WebhookAck(event_type=event_type)


@router.post(
    "/{application_id}/intent",
    response_model=ApiResponse[PaymentIntentResponse],
    dependencies=[Depends(user_rate_limit("payment_intent", limit=10, window_seconds=60))],
)
async def create_payment_intent(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payment, client_secret = await service.create_payment_intent(db, user, application_id)
    return ok(
        PaymentIntentResponse(
            payment=PaymentResponse.model_validate(payment),
            client_secret=client_secret,
        ),
        "Payment intent created",
    )


@router.get(
    "/application/{application_id}", response_model=ApiResponse[list[PaymentResponse]]
)
async def list_application_payments(
    application_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payments = await service.list_payments_for_application(db, user, application_id)
    return ok(
        [PaymentResponse.model_validate(p) for p in payments],
        f"Retrieved {len(payments)} payments",
    )


@router.get("/{payment_id}", response_model=ApiResponse[PaymentResponse])
async def get_payment(
    payment_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payment = await service.get_payment(db, user, payment_id)
    return ok(PaymentResponse.model_validate(payment), "Payment retrieved")


@router.post("/{payment_id}/confirm", response_model=ApiResponse[PaymentResponse])
async def confirm_payment(
    payment_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payment = await service.confirm_payment(db, user, payment_id)
    return ok(PaymentResponse.model_validate(payment), "Payment confirmed")
