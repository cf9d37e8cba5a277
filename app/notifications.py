"""Email notifications for contact requests.

A stored contact request triggers two independent deliveries: a notice
to the shop admin and an acknowledgement to the submitter. Deliveries
run concurrently, each bounded by ``MAIL_TIMEOUT_SECONDS``; a failed
delivery is logged and reported in the outcome, never raised.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape

import aiosmtplib
from fastapi import APIRouter, Depends
from fastapi_mail import FastMail, MessageSchema

from . import schemas
from .auth import SessionSubject, get_current_admin
from .core import get_settings, get_mail_config

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])

EXCERPT_LENGTH = 300


@dataclass
class ContactDetails:
    """Fields of a contact request rendered into the notifications."""

    id: str
    name: str
    email: str
    message: str
    created_at: datetime
    phone: str | None = None

    @classmethod
    def from_model(cls, contact) -> "ContactDetails":
        return cls(
            id=contact.id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            message=contact.message,
            created_at=contact.created_at,
        )


def excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    """Shorten ``text`` to ``length`` characters, marking the cut."""
    if len(text) <= length:
        return text
    return text[: length - 1].rstrip() + "…"


def build_admin_notice(contact: ContactDetails) -> MessageSchema:
    """
    Build the message telling the admin about a new contact request.

    Args:
        contact (ContactDetails): Stored request.

    Returns:
        MessageSchema: HTML message with a reply link to the submitter.
    """
    settings = get_settings()
    name = escape(contact.name)
    email = escape(contact.email)
    phone = f"<p><strong>Phone:</strong> {escape(contact.phone)}</p>" if contact.phone else ""
    received = contact.created_at.strftime("%d/%m/%Y %H:%M")
    reply_subject = escape(f"Re: your request on {settings.SITE_NAME}")
    return MessageSchema(
        subject=f"[{settings.SITE_NAME}] New contact request - {contact.name}",
        recipients=[settings.admin_recipient],
        body=f"""
        <html>
          <body>
            <h2>New contact request</h2>
            <p><strong>Name:</strong> {name}</p>
            <p><strong>Email:</strong> <a href="mailto:{email}">{email}</a></p>
            {phone}
            <p><strong>Received:</strong> {received}</p>
            <h3>Message</h3>
            <p>{escape(contact.message)}</p>
            <a href="mailto:{email}?subject={reply_subject}">Reply directly</a>
            <p>Request ID: {escape(contact.id)}</p>
          </body>
        </html>
        """,
        subtype="html",
    )


def build_client_acknowledgement(contact: ContactDetails) -> MessageSchema:
    """
    Build the confirmation sent back to the submitter.

    Args:
        contact (ContactDetails): Stored request.

    Returns:
        MessageSchema: HTML message quoting an excerpt of the request.
    """
    settings = get_settings()
    return MessageSchema(
        subject=f"We received your message - {settings.SITE_NAME}",
        recipients=[contact.email],
        body=f"""
        <html>
          <body>
            <h2>Hello {escape(contact.name)},</h2>
            <p>Thank you for contacting {escape(settings.SITE_NAME)}. We received your message:</p>
            <p><em>"{escape(excerpt(contact.message))}"</em></p>
            <p>Our team will get back to you shortly, usually within 24 hours.</p>
          </body>
        </html>
        """,
        subtype="html",
    )


async def deliver(message: MessageSchema) -> None:
    """
    Send one message, giving up after ``MAIL_TIMEOUT_SECONDS``.

    Raises:
        Exception: Whatever the mail transport raised, or
        ``asyncio.TimeoutError`` when the delivery took too long.
    """
    settings = get_settings()
    fm = FastMail(get_mail_config())
    await asyncio.wait_for(fm.send_message(message), timeout=settings.MAIL_TIMEOUT_SECONDS)


def summarize(admin_result, client_result) -> schemas.NotificationOutcome:
    """
    Classify the results of the two deliveries.

    Args:
        admin_result: ``None`` on success, otherwise the raised exception.
        client_result: ``None`` on success, otherwise the raised exception.

    Returns:
        NotificationOutcome: ``sent``, ``partial`` or ``failed``.
    """
    errors = []
    if isinstance(admin_result, BaseException):
        errors.append("Admin email failed")
    if isinstance(client_result, BaseException):
        errors.append("Client email failed")

    admin_ok = not isinstance(admin_result, BaseException)
    client_ok = not isinstance(client_result, BaseException)
    if admin_ok and client_ok:
        outcome = "sent"
    elif admin_ok or client_ok:
        outcome = "partial"
    else:
        outcome = "failed"
    return schemas.NotificationOutcome(
        status=outcome, admin_email=admin_ok, client_email=client_ok, errors=errors
    )


async def notify_contact_request(contact: ContactDetails) -> schemas.NotificationOutcome:
    """
    Send the admin notice and the submitter acknowledgement concurrently.

    Args:
        contact (ContactDetails): Stored request.

    Returns:
        NotificationOutcome: Delivery outcome of both messages.
    """
    admin_result, client_result = await asyncio.gather(
        _attempt(build_admin_notice, contact),
        _attempt(build_client_acknowledgement, contact),
        return_exceptions=True,
    )
    for channel, result in (("admin", admin_result), ("client", client_result)):
        if isinstance(result, BaseException):
            logger.warning(
                "Contact request %s: %s email failed: %r", contact.id, channel, result
            )
    return summarize(admin_result, client_result)


async def _attempt(build, contact: ContactDetails) -> None:
    # Building the message can fail too, e.g. on a malformed recipient.
    await deliver(build(contact))


def _mask(value: str | None) -> str:
    return "***" + value[-10:] if value else "undefined"


def mail_config_summary() -> dict:
    """Non-secret view of the mail settings."""
    settings = get_settings()
    return {
        "host": settings.SMTP_HOST,
        "port": settings.SMTP_PORT,
        "user": _mask(settings.SMTP_USER),
        "hasPassword": bool(settings.SMTP_PASSWORD),
        "adminEmail": _mask(settings.ADMIN_EMAIL),
    }


async def check_mail_connection() -> schemas.MailCheck:
    """
    Open and authenticate an SMTP session without sending anything.

    Returns:
        MailCheck: Probe result with a masked configuration summary.
    """
    settings = get_settings()
    smtp = aiosmtplib.SMTP(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        use_tls=settings.SMTP_SSL_TLS,
        start_tls=settings.SMTP_STARTTLS,
        timeout=settings.MAIL_TIMEOUT_SECONDS,
    )
    try:
        await smtp.connect()
        await smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        await smtp.quit()
    except (aiosmtplib.SMTPException, OSError) as exc:
        logger.warning("SMTP connection check failed: %r", exc)
        return schemas.MailCheck(
            success=False,
            message=f"Connection failed: {exc}",
            config=mail_config_summary(),
        )
    return schemas.MailCheck(
        success=True, message="Connection succeeded", config=mail_config_summary()
    )


@router.get("/check", response_model=schemas.MailCheck)
async def mail_check(current_admin: SessionSubject = Depends(get_current_admin)):
    """Probe the configured SMTP server."""
    return await check_mail_connection()


@router.post("/test", response_model=schemas.NotificationOutcome)
async def mail_test(current_admin: SessionSubject = Depends(get_current_admin)):
    """
    Send a sample notification pair addressed to the logged-in admin.

    Args:
        current_admin (SessionSubject): Authenticated admin.

    Returns:
        NotificationOutcome: Delivery outcome of the sample messages.
    """
    now = datetime.now(timezone.utc)
    sample = ContactDetails(
        id=f"test-{int(now.timestamp())}",
        name="Test Contact",
        email=current_admin.email,
        message="This is a test email sent from the storefront admin.",
        created_at=now,
    )
    return await notify_contact_request(sample)
