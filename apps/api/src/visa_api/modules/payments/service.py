"""
Payment Service Layer

Visa fees are collected through Stripe PaymentIntents. Stripe's SDK is
blocking, so every call runs in a worker thread under
`payment_provider_timeout_seconds`; processor errors and timeouts surface
as PaymentProviderError (503) before any local state is written.

Each intent gets its own Payment row. A succeeded intent (via webhook or
an explicit confirm) marks its payment COMPLETED and submits the
application when it is still a complete PENDING draft, all in one
transaction. A second intent succeeding for an already-paid application
is recorded as a duplicate and flagged for refund, never resubmitted.
"""

import asyncio
import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any
from uuid import UUID

import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import CurrentUser
from visa_api.core.config import settings
from visa_api.core.email import send_payment_received
from visa_api.core.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PaymentProviderError,
)
from visa_api.core.notifier import notify
from visa_api.modules.applications import repository as application_repository
from visa_api.modules.applications.models import ApplicationStatus
from visa_api.modules.applications.service import (
    apply_submission,
    ensure_owner,
    get_application_or_404,
    missing_sections,
    notify_submitted,
)
from visa_api.modules.audit.models import AuditEntityType
from visa_api.modules.audit.service import record as audit
from visa_api.modules.notifications import service as inbox
from visa_api.modules.notifications.models import NotificationType
from visa_api.modules.payments import repository
from visa_api.modules.payments.models import Payment, PaymentStatus
from visa_api.modules.users.models import Permission, UserRole

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "payment_intent.succeeded"
INTENT_FAILED = "payment_intent.payment_failed"


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: UUID):
        super().__init__(f"Payment {payment_id} not found", "PAYMENT_NOT_FOUND")


def to_minor_units(amount: Decimal) -> int:
    """Stripe amounts are integers in the currency's smallest unit."""
    return int((amount * 100).quantize(Decimal("1")))


async def _call_provider(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    if not settings.stripe_secret_key:
        raise PaymentProviderError("Payment processor is not configured")
    stripe.api_key = settings.stripe_secret_key

    try:
        return await asyncio.wait_for(
            asyncio.to_thread(fn, *args, **kwargs),
            timeout=settings.payment_provider_timeout_seconds,
        )
    except stripe.error.StripeError as exc:
        logger.error(f"Stripe call {fn.__qualname__} failed: {exc}")
        raise PaymentProviderError("Payment processor error, please retry") from exc
    except TimeoutError as exc:
        logger.error(
            f"Stripe call {fn.__qualname__} timed out after "
            f"{settings.payment_provider_timeout_seconds}s"
        )
        raise PaymentProviderError("Payment processor timed out, please retry") from exc


async def _get_payment_or_404(db: AsyncSession, payment_id: UUID) -> Payment:
    payment = await repository.get_by_id(db, payment_id)
    if not payment:
        raise PaymentNotFoundError(payment_id)
    return payment


def _ensure_can_view(user: CurrentUser, payment: Payment) -> None:
    if payment.user_id == user.id:
        return
    if user.is_staff and user.has_permission(Permission.PAYMENTS_VIEW_PAYMENTS.value):
        return
    raise ForbiddenError("You do not have access to this payment")


async def create_payment_intent(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> tuple[Payment, str]:
    """
    Open a PaymentIntent for the application's visa fee.

    Every call records a new Payment row for the new intent. Earlier
    PENDING rows are left alone so a late webhook for an abandoned intent
    still finds its payment.

    Returns:
        (payment, client_secret)

    Raises:
        BadRequestError: If the fee has already been paid
        PaymentProviderError: If Stripe fails or times out
    """
    application = await get_application_or_404(db, application_id)
    ensure_owner(user, application)

    if await repository.get_completed_for_application(db, application.id):
        raise BadRequestError(
            "Payment already completed for this application", "PAYMENT_ALREADY_COMPLETED"
        )

    visa_type = application.visa_type
    amount = visa_type.fee
    currency = (visa_type.currency or settings.stripe_currency).lower()

    intent = await _call_provider(
        stripe.PaymentIntent.create,
        amount=to_minor_units(amount),
        currency=currency,
        metadata={
            "application_id": str(application.id),
            "application_number": application.application_number,
            "user_id": str(user.id),
        },
    )

    payment = await repository.create(
        db,
        application_id=application.id,
        user_id=user.id,
        amount=amount,
        currency=currency,
        provider_payment_id=intent["id"],
    )

    audit(
        db,
        action="PAYMENT_INITIATED",
        entity_type=AuditEntityType.PAYMENT,
        entity_id=payment.id,
        user_id=user.id,
        user_role=user.role.value,
        details={"provider_payment_id": intent["id"], "amount": str(amount)},
    )
    await db.commit()
    await db.refresh(payment)

    logger.info(f"Payment intent {intent['id']} created for application {application.id}")
    return payment, intent["client_secret"]


async def _apply_success(db: AsyncSession, payment: Payment) -> None:
    """Mark the payment COMPLETED and submit the application if it is ready."""
    if not await repository.mark(db, payment.id, PaymentStatus.COMPLETED):
        logger.info(f"Payment {payment.id} already completed, ignoring replay")
        await db.rollback()
        return

    await application_repository.lock(db, payment.application_id)

    # Read after the lock so a concurrently completed sibling intent is visible
    earlier = await repository.get_completed_for_application(
        db, payment.application_id, exclude_id=payment.id
    )
    if earlier:
        audit(
            db,
            action="PAYMENT_DUPLICATE",
            entity_type=AuditEntityType.PAYMENT,
            entity_id=payment.id,
            user_id=payment.user_id,
            user_role=UserRole.APPLICANT.value,
            details={"completed_payment_id": str(earlier.id)},
        )
        await db.commit()
        logger.error(
            f"Payment {payment.id} duplicates completed payment {earlier.id} "
            f"for application {payment.application_id}; refund required"
        )
        return

    application = await get_application_or_404(db, payment.application_id)
    await db.refresh(application)

    audit(
        db,
        action="PAYMENT_COMPLETED",
        entity_type=AuditEntityType.PAYMENT,
        entity_id=payment.id,
        user_id=payment.user_id,
        user_role=UserRole.APPLICANT.value,
    )
    inbox.push(
        db,
        user_id=payment.user_id,
        application_id=application.id,
        type=NotificationType.PAYMENT_RECEIVED,
        title="Payment received",
        message=(
            f"We received your payment of {payment.amount:.2f} {payment.currency.upper()} "
            f"for application {application.application_number}."
        ),
    )

    submitted = False
    if application.status == ApplicationStatus.PENDING and not missing_sections(application):
        submitted = await apply_submission(
            db, application, payment.user_id, UserRole.APPLICANT.value
        )
    else:
        logger.warning(
            f"Payment {payment.id} completed but application {application.id} "
            f"was not submitted (status={application.status.value})"
        )

    await db.commit()
    await db.refresh(payment)
    if submitted:
        await db.refresh(application)

    logger.info(f"Payment {payment.id} completed for application {application.id}")

    applicant = application.applicant
    notify(
        send_payment_received(
            to_email=applicant.email,
            applicant_name=applicant.full_name,
            application_number=application.application_number,
            amount=payment.amount,
            currency=payment.currency,
        ),
        f"payment receipt for payment {payment.id}",
    )
    if submitted:
        notify_submitted(application)


async def _apply_failure(db: AsyncSession, payment: Payment, reason: str | None) -> None:
    if not await repository.mark(db, payment.id, PaymentStatus.FAILED):
        await db.rollback()
        return

    audit(
        db,
        action="PAYMENT_FAILED",
        entity_type=AuditEntityType.PAYMENT,
        entity_id=payment.id,
        user_id=payment.user_id,
        user_role=UserRole.APPLICANT.value,
        details={"reason": reason} if reason else None,
    )
    await db.commit()
    logger.warning(f"Payment {payment.id} failed: {reason}")


async def _record_untracked_intent(db: AsyncSession, intent: dict) -> Payment | None:
    """
    Recover a Payment row for a succeeded intent we have no record of,
    using the application and user ids stamped into its metadata.
    """
    metadata = intent.get("metadata") or {}
    try:
        application_id = UUID(metadata["application_id"])
        user_id = UUID(metadata["user_id"])
    except (KeyError, TypeError, ValueError):
        return None

    if not await application_repository.get_by_id(db, application_id):
        logger.warning(f"Intent {intent.get('id')} references missing application {application_id}")
        return None

    try:
        async with db.begin_nested():
            payment = await repository.create(
                db,
                application_id=application_id,
                user_id=user_id,
                amount=Decimal(intent.get("amount", 0)) / 100,
                currency=(intent.get("currency") or settings.stripe_currency).lower(),
                provider_payment_id=intent["id"],
            )
    except IntegrityError:
        # A replay of the same event recorded it first
        return await repository.get_by_provider_id(db, intent["id"])

    logger.warning(
        f"Recorded untracked intent {intent['id']} as payment {payment.id} "
        f"for application {application_id}"
    )
    return payment


async def handle_webhook(db: AsyncSession, payload: bytes, signature: str | None) -> str:
    """
    Verify and apply a Stripe webhook event.

    Returns:
        The event type, acknowledged even when it is ignored

    Raises:
        BadRequestError: If the signature does not verify
    """
    if not settings.stripe_webhook_secret:
        raise PaymentProviderError("Payment webhooks are not configured")

    try:
        event = stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
    except (ValueError, stripe.error.SignatureVerificationError) as exc:
        logger.warning(f"Rejected Stripe webhook: {exc}")
        raise BadRequestError("Invalid webhook signature", "INVALID_WEBHOOK_SIGNATURE") from exc

    event_type = event.get("type")
    intent = event.get("data", {}).get("object", {})

    if event_type not in (INTENT_SUCCEEDED, INTENT_FAILED):
        logger.debug(f"Ignoring Stripe event {event_type}")
        return event_type

    payment = await repository.get_by_provider_id(db, intent.get("id"))
    if not payment and event_type == INTENT_SUCCEEDED:
        payment = await _record_untracked_intent(db, intent)
    if not payment:
        logger.warning(f"Stripe event {event_type} for unknown intent {intent.get('id')}")
        return event_type

    if event_type == INTENT_SUCCEEDED:
        await _apply_success(db, payment)
    else:
        error = intent.get("last_payment_error") or {}
        await _apply_failure(db, payment, error.get("message"))
    return event_type


async def confirm_payment(db: AsyncSession, user: CurrentUser, payment_id: UUID) -> Payment:
    """
    Re-check the intent with Stripe and apply success handling.

    Raises:
        BadRequestError: If Stripe does not report the intent as succeeded
    """
    payment = await _get_payment_or_404(db, payment_id)
    ensure_owner(user, payment.application)

    if payment.payment_status == PaymentStatus.COMPLETED:
        return payment
    if not payment.provider_payment_id:
        raise BadRequestError("Payment has no processor reference", "PAYMENT_NOT_INITIATED")

    intent = await _call_provider(stripe.PaymentIntent.retrieve, payment.provider_payment_id)
    if intent["status"] != "succeeded":
        raise BadRequestError(
            f"Payment has not succeeded (status: {intent['status']})", "PAYMENT_NOT_COMPLETED"
        )

    await _apply_success(db, payment)
    await db.refresh(payment)
    return payment


async def get_payment(db: AsyncSession, user: CurrentUser, payment_id: UUID) -> Payment:
    payment = await _get_payment_or_404(db, payment_id)
    _ensure_can_view(user, payment)
    return payment


async def list_payments_for_application(
    db: AsyncSession,
    user: CurrentUser,
    application_id: UUID,
) -> list[Payment]:
    """Every payment attempt for the application, newest first."""
    application = await get_application_or_404(db, application_id)
    if application.user_id != user.id and not (
        user.is_staff and user.has_permission(Permission.PAYMENTS_VIEW_PAYMENTS.value)
    ):
        raise ForbiddenError("You do not have access to this payment")
    return await repository.list_for_application(db, application.id)
