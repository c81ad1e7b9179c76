"""
Unit tests for visa fee payments.

Stripe is never called: PaymentIntent and Webhook entry points are
monkeypatched the same way the billing webhook tests do it.
"""

import time
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
import stripe

from visa_api.core.errors import BadRequestError, ForbiddenError, PaymentProviderError
from visa_api.modules.applications.models import ApplicationStatus
from visa_api.modules.payments.models import Payment, PaymentStatus
from visa_api.modules.payments.service import (
    confirm_payment,
    create_payment_intent,
    handle_webhook,
    list_payments_for_application,
    to_minor_units,
)

SERVICE = "visa_api.modules.payments.service"


@pytest.fixture
def payment_settings():
    settings = MagicMock()
    settings.stripe_secret_key = "sk_test_123"
    settings.stripe_webhook_secret = "whsec_123"
    settings.stripe_currency = "usd"
    settings.payment_provider_timeout_seconds = 0.2
    with patch(f"{SERVICE}.settings", settings):
        yield settings


@pytest.fixture
def payment(application, applicant):
    item = MagicMock(spec=Payment)
    item.id = uuid4()
    item.application_id = application.id
    item.application = application
    item.user_id = applicant.id
    item.amount = Decimal("80.00")
    item.currency = "usd"
    item.payment_status = PaymentStatus.PENDING
    item.provider_payment_id = "pi_123"
    return item


def _event(event_type: str, intent_id: str = "pi_123", **intent_fields) -> dict:
    return {"type": event_type, "data": {"object": {"id": intent_id, **intent_fields}}}


class TestToMinorUnits:
    def test_converts_to_cents(self):
        assert to_minor_units(Decimal("80.00")) == 8000
        assert to_minor_units(Decimal("19.99")) == 1999


class TestCreatePaymentIntent:
    @pytest.mark.asyncio
    async def test_creates_pending_payment(
        self, mock_db, applicant, application, payment, payment_settings, monkeypatch
    ):
        calls = {}

        def fake_create(**kwargs):
            calls.update(kwargs)
            return {"id": "pi_123", "client_secret": "pi_123_secret"}

        monkeypatch.setattr(stripe.PaymentIntent, "create", staticmethod(fake_create))

        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=payment)

            result, client_secret = await create_payment_intent(
                mock_db, applicant, application.id
            )

            assert result is payment
            assert client_secret == "pi_123_secret"
            assert calls["amount"] == 8000
            assert calls["currency"] == "usd"
            assert calls["metadata"]["application_id"] == str(application.id)
            assert mock_repo.create.call_args.kwargs["provider_payment_id"] == "pi_123"
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_already_paid(self, mock_db, applicant, application, payment):
        payment.payment_status = PaymentStatus.COMPLETED
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.get_completed_for_application = AsyncMock(return_value=payment)

            with pytest.raises(BadRequestError) as exc_info:
                await create_payment_intent(mock_db, applicant, application.id)
            assert exc_info.value.message == "Payment already completed for this application"

    @pytest.mark.asyncio
    async def test_provider_error_writes_nothing(
        self, mock_db, applicant, application, payment_settings, monkeypatch
    ):
        def failing_create(**kwargs):
            raise stripe.error.APIConnectionError("network down")

        monkeypatch.setattr(stripe.PaymentIntent, "create", staticmethod(failing_create))

        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock()

            with pytest.raises(PaymentProviderError) as exc_info:
                await create_payment_intent(mock_db, applicant, application.id)

            assert exc_info.value.status_code == 503
            mock_repo.create.assert_not_called()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_timeout(
        self, mock_db, applicant, application, payment_settings, monkeypatch
    ):
        def slow_create(**kwargs):
            time.sleep(1)
            return {"id": "pi_late", "client_secret": "late"}

        monkeypatch.setattr(stripe.PaymentIntent, "create", staticmethod(slow_create))

        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)

            with pytest.raises(PaymentProviderError):
                await create_payment_intent(mock_db, applicant, application.id)
            mock_db.commit.assert_not_called()


class TestHandleWebhook:
    @pytest.mark.asyncio
    async def test_invalid_signature(self, mock_db, payment_settings, monkeypatch):
        def bad_signature(payload, sig_header, secret):
            raise stripe.error.SignatureVerificationError("bad", sig_header)

        monkeypatch.setattr(stripe.Webhook, "construct_event", staticmethod(bad_signature))

        with pytest.raises(BadRequestError):
            await handle_webhook(mock_db, b"{}", "sig")

    @pytest.mark.asyncio
    async def test_success_submits_pending_application(
        self, mock_db, application, payment, payment_settings, monkeypatch
    ):
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(lambda payload, sig, secret: _event("payment_intent.succeeded")),
        )
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
            patch(f"{SERVICE}.notify_submitted") as mock_notify_submitted,
            patch(f"{SERVICE}.send_payment_received", new_callable=AsyncMock) as mock_receipt,
        ):
            mock_repo.get_by_provider_id = AsyncMock(return_value=payment)
            mock_repo.mark = AsyncMock(return_value=True)
            mock_app_repo.lock = AsyncMock()
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_get.return_value = application
            mock_submit.return_value = True

            event_type = await handle_webhook(mock_db, b"{}", "sig")

            assert event_type == "payment_intent.succeeded"
            mock_repo.mark.assert_called_once_with(mock_db, payment.id, PaymentStatus.COMPLETED)
            mock_submit.assert_called_once()
            mock_db.commit.assert_called_once()
            mock_receipt.assert_called_once()
            mock_notify_submitted.assert_called_once_with(application)

    @pytest.mark.asyncio
    async def test_success_for_submitted_application_only_records_payment(
        self, mock_db, application, payment, payment_settings, monkeypatch
    ):
        application.status = ApplicationStatus.SUBMITTED
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(lambda payload, sig, secret: _event("payment_intent.succeeded")),
        )
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
            patch(f"{SERVICE}.notify_submitted") as mock_notify_submitted,
            patch(f"{SERVICE}.send_payment_received", new_callable=AsyncMock),
        ):
            mock_repo.get_by_provider_id = AsyncMock(return_value=payment)
            mock_repo.mark = AsyncMock(return_value=True)
            mock_app_repo.lock = AsyncMock()
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_get.return_value = application

            await handle_webhook(mock_db, b"{}", "sig")

            mock_submit.assert_not_called()
            mock_notify_submitted.assert_not_called()
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_replayed_success_is_ignored(
        self, mock_db, payment, payment_settings, monkeypatch
    ):
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(lambda payload, sig, secret: _event("payment_intent.succeeded")),
        )
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
        ):
            mock_repo.get_by_provider_id = AsyncMock(return_value=payment)
            mock_repo.mark = AsyncMock(return_value=False)

            await handle_webhook(mock_db, b"{}", "sig")

            mock_submit.assert_not_called()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_marks_failed(self, mock_db, payment, payment_settings, monkeypatch):
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(lambda payload, sig, secret: _event("payment_intent.payment_failed")),
        )
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
        ):
            mock_repo.get_by_provider_id = AsyncMock(return_value=payment)
            mock_repo.mark = AsyncMock(return_value=True)

            await handle_webhook(mock_db, b"{}", "sig")

            mock_repo.mark.assert_called_once_with(mock_db, payment.id, PaymentStatus.FAILED)
            mock_submit.assert_not_called()
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_event_is_acknowledged(self, mock_db, payment_settings, monkeypatch):
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(lambda payload, sig, secret: _event("charge.refunded")),
        )
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_provider_id = AsyncMock()

            assert await handle_webhook(mock_db, b"{}", "sig") == "charge.refunded"
            mock_repo.get_by_provider_id.assert_not_called()


class TestConfirmPayment:
    @pytest.mark.asyncio
    async def test_intent_not_succeeded(
        self, mock_db, applicant, payment, payment_settings, monkeypatch
    ):
        monkeypatch.setattr(
            stripe.PaymentIntent,
            "retrieve",
            staticmethod(lambda intent_id: {"id": intent_id, "status": "processing"}),
        )
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=payment)
            mock_repo.mark = AsyncMock()

            with pytest.raises(BadRequestError) as exc_info:
                await confirm_payment(mock_db, applicant, payment.id)
            assert exc_info.value.error_code == "PAYMENT_NOT_COMPLETED"
            mock_repo.mark.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_completed_returns_payment(self, mock_db, applicant, payment):
        payment.payment_status = PaymentStatus.COMPLETED
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=payment)

            assert await confirm_payment(mock_db, applicant, payment.id) is payment


def _payment_for(application, applicant, intent_id: str, status=PaymentStatus.PENDING):
    item = MagicMock(spec=Payment)
    item.id = uuid4()
    item.application_id = application.id
    item.application = application
    item.user_id = applicant.id
    item.amount = Decimal("80.00")
    item.currency = "usd"
    item.payment_status = status
    item.provider_payment_id = intent_id
    return item


class TestMultipleIntents:
    """Each intent keeps its own row, so no succeeded intent goes unmatched."""

    @pytest.mark.asyncio
    async def test_new_intent_leaves_earlier_payment_untouched(
        self, mock_db, applicant, application, payment_settings, monkeypatch
    ):
        first = _payment_for(application, applicant, "pi_first")
        second = _payment_for(application, applicant, "pi_second")
        monkeypatch.setattr(
            stripe.PaymentIntent,
            "create",
            staticmethod(lambda **kwargs: {"id": "pi_second", "client_secret": "secret_2"}),
        )

        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=second)

            result, client_secret = await create_payment_intent(
                mock_db, applicant, application.id
            )

            assert result is second
            assert client_secret == "secret_2"
            assert mock_repo.create.call_args.kwargs["provider_payment_id"] == "pi_second"
            assert first.provider_payment_id == "pi_first"
            assert first.payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_earlier_intent_success_still_submits(
        self, mock_db, applicant, application, payment_settings, monkeypatch
    ):
        first = _payment_for(application, applicant, "pi_first")
        second = _payment_for(application, applicant, "pi_second")
        by_intent = {"pi_first": first, "pi_second": second}
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(
                lambda payload, sig, secret: _event("payment_intent.succeeded", "pi_first")
            ),
        )

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
            patch(f"{SERVICE}.notify_submitted"),
            patch(f"{SERVICE}.send_payment_received", new_callable=AsyncMock),
        ):
            mock_repo.get_by_provider_id = AsyncMock(
                side_effect=lambda db, intent_id: by_intent.get(intent_id)
            )
            mock_repo.mark = AsyncMock(return_value=True)
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_app_repo.lock = AsyncMock()
            mock_get.return_value = application
            mock_submit.return_value = True

            await handle_webhook(mock_db, b"{}", "sig")

            mock_repo.mark.assert_called_once_with(mock_db, first.id, PaymentStatus.COMPLETED)
            mock_submit.assert_called_once()
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_second_success_is_flagged_as_duplicate(
        self, mock_db, applicant, application, payment_settings, monkeypatch
    ):
        paid = _payment_for(application, applicant, "pi_first", PaymentStatus.COMPLETED)
        late = _payment_for(application, applicant, "pi_second")
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(
                lambda payload, sig, secret: _event("payment_intent.succeeded", "pi_second")
            ),
        )

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.audit") as mock_audit,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
            patch(f"{SERVICE}.send_payment_received", new_callable=AsyncMock) as mock_receipt,
        ):
            mock_repo.get_by_provider_id = AsyncMock(return_value=late)
            mock_repo.mark = AsyncMock(return_value=True)
            mock_repo.get_completed_for_application = AsyncMock(return_value=paid)
            mock_app_repo.lock = AsyncMock()

            await handle_webhook(mock_db, b"{}", "sig")

            assert mock_audit.call_args.kwargs["action"] == "PAYMENT_DUPLICATE"
            assert mock_audit.call_args.kwargs["details"] == {"completed_payment_id": str(paid.id)}
            mock_submit.assert_not_called()
            mock_receipt.assert_not_called()
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_untracked_intent_is_recovered_from_metadata(
        self, mock_db, applicant, application, payment_settings, monkeypatch
    ):
        recovered = _payment_for(application, applicant, "pi_lost")
        event = _event(
            "payment_intent.succeeded",
            "pi_lost",
            amount=8000,
            currency="usd",
            metadata={"application_id": str(application.id), "user_id": str(applicant.id)},
        )
        monkeypatch.setattr(
            stripe.Webhook, "construct_event", staticmethod(lambda payload, sig, secret: event)
        )

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.application_repository") as mock_app_repo,
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.apply_submission", new_callable=AsyncMock) as mock_submit,
            patch(f"{SERVICE}.notify_submitted"),
            patch(f"{SERVICE}.send_payment_received", new_callable=AsyncMock),
        ):
            mock_repo.get_by_provider_id = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=recovered)
            mock_repo.mark = AsyncMock(return_value=True)
            mock_repo.get_completed_for_application = AsyncMock(return_value=None)
            mock_app_repo.get_by_id = AsyncMock(return_value=application)
            mock_app_repo.lock = AsyncMock()
            mock_get.return_value = application
            mock_submit.return_value = True

            await handle_webhook(mock_db, b"{}", "sig")

            create_kwargs = mock_repo.create.call_args.kwargs
            assert create_kwargs["application_id"] == application.id
            assert create_kwargs["user_id"] == applicant.id
            assert create_kwargs["amount"] == Decimal("80")
            assert create_kwargs["provider_payment_id"] == "pi_lost"
            mock_repo.mark.assert_called_once_with(
                mock_db, recovered.id, PaymentStatus.COMPLETED
            )
            mock_submit.assert_called_once()

    @pytest.mark.asyncio
    async def test_untracked_intent_without_metadata_is_acknowledged(
        self, mock_db, payment_settings, monkeypatch
    ):
        monkeypatch.setattr(
            stripe.Webhook,
            "construct_event",
            staticmethod(
                lambda payload, sig, secret: _event("payment_intent.succeeded", "pi_foreign")
            ),
        )
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_provider_id = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock()
            mock_repo.mark = AsyncMock()

            assert await handle_webhook(mock_db, b"{}", "sig") == "payment_intent.succeeded"
            mock_repo.create.assert_not_called()
            mock_repo.mark.assert_not_called()
            mock_db.commit.assert_not_called()


class TestListPaymentsForApplication:
    @pytest.mark.asyncio
    async def test_owner_sees_every_attempt(self, mock_db, applicant, application):
        attempts = [
            _payment_for(application, applicant, "pi_second"),
            _payment_for(application, applicant, "pi_first", PaymentStatus.FAILED),
        ]
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.list_for_application = AsyncMock(return_value=attempts)

            assert await list_payments_for_application(mock_db, applicant, application.id) == (
                attempts
            )

    @pytest.mark.asyncio
    async def test_other_applicant_is_denied(self, mock_db, other_applicant, application):
        with (
            patch(f"{SERVICE}.get_application_or_404", new_callable=AsyncMock) as mock_get,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_get.return_value = application
            mock_repo.list_for_application = AsyncMock()

            with pytest.raises(ForbiddenError):
                await list_payments_for_application(mock_db, other_applicant, application.id)
            mock_repo.list_for_application.assert_not_called()
