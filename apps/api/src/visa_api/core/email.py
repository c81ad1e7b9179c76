"""
Email Service using Resend

Renders and sends the transactional emails of the visa workflow.
Every sender returns True on success and False on failure; callers treat
delivery as best-effort.
"""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from html import escape

import resend

from visa_api.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key or None

_STYLE = """
    body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
    .header { color: #0f3d5e; margin-bottom: 24px; }
    .panel { background-color: #f3f4f6; border-radius: 8px; padding: 16px 20px; margin: 20px 0; }
    .button { display: inline-block; background-color: #0f3d5e; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


def _layout(title: str, body: str) -> str:
    """Wrap an email body in the shared HTML shell."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head><style>{_STYLE}</style></head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>This is an automated message from the Visa Application Portal.</p>
            </div>
        </div>
    </body>
    </html>
    """


def _format_datetime(value: datetime) -> str:
    return value.strftime("%A, %d %B %Y at %H:%M %Z").strip()


def _application_url(application_id: str) -> str:
    return f"{settings.frontend_url}/applications/{application_id}"


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Without an API key the email is logged instead of sent.

    Returns:
        True if the email was sent (or logged) successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


# ============================================
# Application lifecycle
# ============================================


async def send_application_submitted(
    to_email: str,
    applicant_name: str,
    application_number: str,
    application_id: str,
) -> bool:
    """Confirm to the applicant that their application was submitted."""
    safe_name = escape(applicant_name)
    safe_number = escape(application_number)

    body = f"""
        <p>Hello {safe_name},</p>
        <p>Your visa application <strong>{safe_number}</strong> has been submitted successfully.</p>
        <p>An officer will review it shortly. You will be notified by email when its status changes.</p>
        <a href="{_application_url(application_id)}" class="button">View Application</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Visa application {safe_number} submitted",
        html_content=_layout("Application Submitted", body),
    )


async def send_application_status_changed(
    to_email: str,
    applicant_name: str,
    application_number: str,
    application_id: str,
    new_status: str,
    rejection_reason: str | None = None,
    expiry_date: datetime | None = None,
) -> bool:
    """Tell the applicant their application moved to a new status."""
    safe_name = escape(applicant_name)
    safe_number = escape(application_number)
    safe_status = escape(new_status.replace("_", " ").title())

    details = ""
    if rejection_reason:
        details = f'<div class="panel"><strong>Reason:</strong> {escape(rejection_reason)}</div>'
    elif expiry_date:
        details = (
            f'<div class="panel">Your visa is valid until '
            f"<strong>{expiry_date.strftime('%d %B %Y')}</strong>.</div>"
        )

    body = f"""
        <p>Hello {safe_name},</p>
        <p>The status of your visa application <strong>{safe_number}</strong>
        is now <strong>{safe_status}</strong>.</p>
        {details}
        <a href="{_application_url(application_id)}" class="button">View Application</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Visa application {safe_number}: {safe_status}",
        html_content=_layout("Application Status Updated", body),
    )


# ============================================
# Document requests
# ============================================


async def send_document_request_created(
    to_email: str,
    applicant_name: str,
    application_number: str,
    application_id: str,
    document_name: str,
    additional_details: str | None = None,
) -> bool:
    """Ask the applicant for an additional document."""
    safe_name = escape(applicant_name)
    safe_number = escape(application_number)
    safe_document = escape(document_name)
    details = (
        f'<div class="panel">{escape(additional_details)}</div>' if additional_details else ""
    )

    body = f"""
        <p>Hello {safe_name},</p>
        <p>An officer reviewing application <strong>{safe_number}</strong> has requested
        an additional document: <strong>{safe_document}</strong>.</p>
        {details}
        <a href="{_application_url(application_id)}" class="button">Upload Document</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Document requested: {safe_document}",
        html_content=_layout("Additional Document Requested", body),
    )


async def send_document_request_cancelled(
    to_email: str,
    applicant_name: str,
    application_number: str,
    document_name: str,
) -> bool:
    """Tell the applicant a document request was withdrawn."""
    safe_name = escape(applicant_name)
    safe_document = escape(document_name)

    body = f"""
        <p>Hello {safe_name},</p>
        <p>The request for <strong>{safe_document}</strong> on application
        <strong>{escape(application_number)}</strong> has been cancelled.
        No further action is needed.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Document request cancelled: {safe_document}",
        html_content=_layout("Document Request Cancelled", body),
    )


async def send_document_request_fulfilled(
    to_email: str,
    officer_name: str,
    application_number: str,
    application_id: str,
    document_name: str,
) -> bool:
    """Tell the requesting officer the applicant has responded."""
    safe_document = escape(document_name)

    body = f"""
        <p>Hello {escape(officer_name)},</p>
        <p>The applicant for <strong>{escape(application_number)}</strong> has submitted
        <strong>{safe_document}</strong> in response to your request.</p>
        <a href="{_application_url(application_id)}" class="button">Review Document</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Requested document submitted: {safe_document}",
        html_content=_layout("Requested Document Submitted", body),
    )


# ============================================
# Interviews
# ============================================


async def send_interview_scheduled(
    to_email: str,
    applicant_name: str,
    application_number: str,
    scheduled_at: datetime,
    location: str,
    rescheduled: bool = False,
) -> bool:
    """Invite the applicant to an interview, or tell them it moved."""
    title = "Interview Rescheduled" if rescheduled else "Interview Scheduled"
    body = f"""
        <p>Hello {escape(applicant_name)},</p>
        <p>An interview for your visa application <strong>{escape(application_number)}</strong>
        has been {"rescheduled" if rescheduled else "scheduled"}.</p>
        <div class="panel">
            <p><strong>When:</strong> {_format_datetime(scheduled_at)}</p>
            <p><strong>Where:</strong> {escape(location)}</p>
        </div>
        <p>Please log in to confirm your attendance.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"{title}: {escape(application_number)}",
        html_content=_layout(title, body),
    )


async def send_interview_cancelled(
    to_email: str,
    applicant_name: str,
    application_number: str,
    scheduled_at: datetime,
) -> bool:
    body = f"""
        <p>Hello {escape(applicant_name)},</p>
        <p>Your interview on {_format_datetime(scheduled_at)} for application
        <strong>{escape(application_number)}</strong> has been cancelled.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Interview cancelled: {escape(application_number)}",
        html_content=_layout("Interview Cancelled", body),
    )


async def send_interview_confirmed(
    to_email: str,
    officer_name: str,
    applicant_name: str,
    application_number: str,
    scheduled_at: datetime,
) -> bool:
    """Tell the assigned officer the applicant confirmed attendance."""
    body = f"""
        <p>Hello {escape(officer_name)},</p>
        <p>{escape(applicant_name)} has confirmed the interview for application
        <strong>{escape(application_number)}</strong> on {_format_datetime(scheduled_at)}.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Interview confirmed: {escape(application_number)}",
        html_content=_layout("Interview Confirmed", body),
    )


async def send_interview_completed(
    to_email: str,
    applicant_name: str,
    application_number: str,
) -> bool:
    body = f"""
        <p>Hello {escape(applicant_name)},</p>
        <p>Your interview for application <strong>{escape(application_number)}</strong>
        has been completed. You will be notified once a decision is made.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Interview completed: {escape(application_number)}",
        html_content=_layout("Interview Completed", body),
    )


# ============================================
# Payments
# ============================================


async def send_payment_received(
    to_email: str,
    applicant_name: str,
    application_number: str,
    amount: Decimal,
    currency: str,
) -> bool:
    body = f"""
        <p>Hello {escape(applicant_name)},</p>
        <p>We received your payment of <strong>{amount:.2f} {escape(currency.upper())}</strong>
        for visa application <strong>{escape(application_number)}</strong>.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Payment received: {escape(application_number)}",
        html_content=_layout("Payment Received", body),
    )


async def send_new_message(
    to_email: str,
    recipient_name: str,
    sender_name: str,
    application_number: str,
    application_id: str,
) -> bool:
    """Tell the recipient a message is waiting; the content stays in the app."""
    safe_number = escape(application_number)
    body = f"""
        <p>Hello {escape(recipient_name)},</p>
        <p>{escape(sender_name)} sent you a message about visa application
        <strong>{safe_number}</strong>.</p>
        <a href="{_application_url(application_id)}" class="button">Read Message</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"New message on application {safe_number}",
        html_content=_layout("New Message", body),
    )
