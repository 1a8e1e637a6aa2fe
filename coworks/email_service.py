"""
Email Service using Resend
Templates are written in MJML and compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import BUSINESS_NAME, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    booking_confirmation_template,
    password_reset_template,
    verification_status_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    """Raised when no email provider credentials are configured"""

    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


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

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise


async def send_password_reset_email(to: str, reset_link: str) -> dict:
    return await send_email(
        to=to,
        subject=f"Reset Your Password - {BUSINESS_NAME}",
        mjml_content=password_reset_template(reset_link),
    )


async def send_booking_confirmation_email(
    to: str,
    customer_name: str,
    branch_name: str,
    seating_type: str,
    seat_codes: list[str],
    start: str,
    end: str,
    total_amount: float,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Booking Confirmed - {branch_name}",
        mjml_content=booking_confirmation_template(
            customer_name, branch_name, seating_type, seat_codes, start, end, total_amount
        ),
    )


async def send_verification_status_email(
    to: str, customer_name: str, status: str, notes: Optional[str] = None
) -> dict:
    """Tell the customer their documents were approved or rejected"""
    return await send_email(
        to=to,
        subject=f"Profile Verification Update - {BUSINESS_NAME}",
        mjml_content=verification_status_template(customer_name, status, notes),
    )
