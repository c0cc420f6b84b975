"""
Leave notification emails

Delivery is best-effort: endpoints schedule ``send_email`` as a background
task after the leave change is committed, and any SMTP failure is logged and
dropped so it can never undo or fail a leave operation.
"""
import logging
import smtplib
from datetime import date
from email.message import EmailMessage
from typing import Iterable, Optional, Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
        smtp.send_message(message)


def send_email(to: Iterable[str], subject: str, body: str) -> bool:
    """
    Send a plain-text email. Never raises.

    Returns:
        True if the message was handed to the SMTP server
    """
    recipients = [address for address in to if address]
    if not recipients:
        return False
    if not settings.email_configured:
        logger.debug("Email disabled, skipping notification: %s", subject)
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.EMAIL_FROM
    message["To"] = ", ".join(recipients)
    message.set_content(body)

    try:
        _deliver(message)
    except Exception:
        logger.exception("Failed to send email '%s' to %s", subject, recipients)
        return False
    logger.info("Notification email sent to %s", recipients)
    return True


def _period(start_date: date, end_date: date) -> str:
    if start_date == end_date:
        return start_date.isoformat()
    return f"{start_date.isoformat()} to {end_date.isoformat()}"


def new_request_email(
    employee_name: str,
    leave_type_name: str,
    start_date: date,
    end_date: date,
    quantity: str,
    reason: Optional[str],
) -> Tuple[str, str]:
    """Subject and body of the mail sent to admin/HR when an employee applies"""
    subject = f"New leave request: {employee_name} ({leave_type_name})"
    body = (
        f"{employee_name} has requested {leave_type_name}.\n\n"
        f"Period: {_period(start_date, end_date)}\n"
        f"Duration: {quantity}\n"
        f"Reason: {reason or '-'}\n\n"
        "Please review the request in the leave management portal."
    )
    return subject, body


def status_change_email(
    employee_name: str,
    leave_type_name: str,
    start_date: date,
    end_date: date,
    status: str,
    rejection_reason: Optional[str] = None,
) -> Tuple[str, str]:
    """Subject and body of the mail sent to the requester after approval or rejection"""
    subject = f"Leave {status}: {leave_type_name}"
    lines = [
        f"Hello {employee_name},",
        "",
        f"Your {leave_type_name} request for {_period(start_date, end_date)} has been {status}.",
    ]
    if rejection_reason:
        lines.append(f"Reason: {rejection_reason}")
    return subject, "\n".join(lines)
