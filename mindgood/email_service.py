"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from datetime import datetime
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_booked_therapist_template,
    appointment_confirmed_client_template,
    payout_completed_template,
    refund_processed_template,
    therapist_rejected_template,
    therapist_verified_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    errors = getattr(result, "errors", None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return result.html


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    html_content = compile_mjml_to_html(mjml_content)

    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }

    response = resend.Emails.send(email_data)
    logger.info(f"✅ Email sent successfully via Resend to {recipients}")
    return response


async def notify(notification_type: str, to: Optional[str], subject: str, mjml_content: str) -> bool:
    """
    Best-effort notification: a failed email never fails the request that triggered it.

    Returns:
        True if the email was handed to Resend
    """
    if not to:
        logger.debug(f"⚠️ No email address for {notification_type} notification")
        return False

    try:
        logger.info(f"📧 Sending {notification_type} email to {to}")
        await send_email(to=to, subject=subject, mjml_content=mjml_content)
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send {notification_type} email to {to}: {e}")
        return False


def _format_date(value) -> str:
    if isinstance(value, datetime):
        return value.strftime("%A, %B %d, %Y at %H:%M %Z").strip()
    return str(value or "")


async def send_appointment_confirmation(
    client_name: str,
    client_email: str,
    therapist_name: str,
    therapist_email: str,
    appointment_date,
    duration: int,
    meeting_link: str,
    amount: float,
    currency: str,
) -> dict:
    """Send the client confirmation and the therapist booking notice"""
    date_label = _format_date(appointment_date)

    client_sent = await notify(
        "appointment confirmation",
        client_email,
        "✅ Your Therapy Appointment is Confirmed",
        appointment_confirmed_client_template(
            client_name=client_name,
            therapist_name=therapist_name,
            appointment_date=date_label,
            duration=duration,
            meeting_link=meeting_link,
            amount=amount,
            currency=currency,
        ),
    )
    therapist_sent = await notify(
        "new appointment",
        therapist_email,
        "📅 New Appointment Booked",
        appointment_booked_therapist_template(
            therapist_name=therapist_name,
            client_name=client_name,
            appointment_date=date_label,
            duration=duration,
            meeting_link=meeting_link,
        ),
    )
    return {"client_sent": client_sent, "therapist_sent": therapist_sent}


async def send_therapist_verified_email(to: str, therapist_name: str) -> bool:
    return await notify(
        "therapist verified",
        to,
        "Your MindGood profile is verified",
        therapist_verified_template(therapist_name),
    )


async def send_therapist_rejected_email(to: str, therapist_name: str) -> bool:
    return await notify(
        "therapist rejected",
        to,
        "An update on your MindGood application",
        therapist_rejected_template(therapist_name),
    )


async def send_payout_completed_email(
    to: str, therapist_name: str, net_amount: float, currency: str, appointment_id: str
) -> bool:
    return await notify(
        "payout completed",
        to,
        f"Payout sent: {net_amount:,.2f} {currency.upper()}",
        payout_completed_template(therapist_name, net_amount, currency, appointment_id),
    )


async def send_refund_processed_email(
    to: str, client_name: str, amount: float, currency: str
) -> bool:
    return await notify(
        "refund processed",
        to,
        "Your refund has been processed",
        refund_processed_template(client_name, amount, currency),
    )
