"""
Outbound email for confirmations, check-ins and announcements.

SMTP is blocking, so every send runs in Starlette's threadpool. When
EMAIL_ENABLED is false nothing is sent; the message is logged and counted as
skipped, which keeps local development and tests free of an SMTP server.

Callers treat email as advisory. A failed send is logged by the caller and
never fails or rolls back the operation that triggered it.
"""

import base64
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from functools import lru_cache
from html import escape
from typing import Optional, Sequence

from starlette.concurrency import run_in_threadpool

from checkin.core.config import Settings, get_settings
from checkin.core.exceptions import EmailDeliveryError
from checkin.core.logging import get_logger
from checkin.core.metrics import record_email

logger = get_logger(__name__)

_PAGE = """\
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
  <div style="background: {accent}; color: white; padding: 24px; text-align: center;">
    <h1 style="margin: 0;">{heading}</h1>
  </div>
  <div style="background: #f9f9f9; padding: 24px;">
    {body}
    <p style="color: #999; font-size: 12px; margin-top: 32px;">
      This is an automated email. Please do not reply to this message.
    </p>
  </div>
</body>
</html>
"""


def _details_table(rows: Sequence[tuple[str, str]]) -> str:
    cells = "".join(
        f'<tr><td style="font-weight: bold; padding: 6px 12px 6px 0;">{escape(label)}</td>'
        f"<td>{escape(value)}</td></tr>"
        for label, value in rows
    )
    return f"<table>{cells}</table>"


def _details_text(rows: Sequence[tuple[str, str]]) -> str:
    return "\n".join(f"- {label} {value}" for label, value in rows)


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.EMAIL_ENABLED

    def _build(
        self,
        subject: str,
        text: str,
        html: str,
        to: Optional[str] = None,
        bcc: Sequence[str] = (),
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((self.settings.EMAIL_FROM_NAME, self.settings.EMAIL_FROM_ADDRESS))
        # Broadcasts go out with only the sender visible
        msg["To"] = to or msg["From"]
        if bcc:
            msg["Bcc"] = ", ".join(bcc)
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def _connect(self) -> smtplib.SMTP:
        s = self.settings
        if s.SMTP_USE_SSL:
            client = smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT)
        else:
            client = smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT)
        try:
            if not s.SMTP_USE_SSL:
                client.starttls()
            if s.SMTP_USERNAME:
                client.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
        except Exception:
            client.close()
            raise
        return client

    def _deliver_sync(self, msg: EmailMessage) -> None:
        with self._connect() as client:
            client.send_message(msg)

    async def _send(self, kind: str, msg: EmailMessage) -> None:
        if not self.enabled:
            logger.info("email_skipped", kind=kind, subject=msg["Subject"])
            record_email(kind, "skipped")
            return
        try:
            await run_in_threadpool(self._deliver_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            record_email(kind, "failed")
            raise EmailDeliveryError(f"{kind} email failed: {e}") from e
        record_email(kind, "sent")
        logger.info("email_sent", kind=kind, subject=msg["Subject"])

    async def send_registration_confirmation(
        self,
        to: str,
        user_name: str,
        event_title: str,
        event_date: str,
        event_time: str,
        event_location: str,
        ticket_uuid: str,
        qr_code_data_url: str,
    ) -> None:
        rows = [
            ("Event:", event_title),
            ("Date:", event_date),
            ("Time:", event_time),
            ("Location:", event_location),
        ]
        subject = f"Registration Confirmed: {event_title}"
        text = (
            f"Dear {user_name},\n\n"
            f"Thank you for registering! Your ticket for {event_title} has been confirmed.\n\n"
            f"Event Details:\n{_details_text(rows)}\n\n"
            f"Your Ticket ID: {ticket_uuid}\n\n"
            "Please present your QR code at the event entrance.\n"
        )
        body = (
            f"<p>Dear {escape(user_name)},</p>"
            f"<p>Thank you for registering! Your ticket for <strong>{escape(event_title)}</strong> "
            "has been confirmed.</p>"
            f"{_details_table(rows)}"
            "<h2>Your Ticket QR Code</h2>"
            "<p>Present this QR code at the event entrance for check-in:</p>"
            '<img src="cid:ticket-qr" alt="QR Code" style="max-width: 250px;" />'
            f'<p><strong>Ticket ID:</strong> <code>{escape(ticket_uuid)}</code></p>'
        )
        html = _PAGE.format(accent="#667eea", heading="Registration Confirmed!", body=body)
        msg = self._build(subject, text, html, to=to)
        _attach_inline_png(msg, qr_code_data_url, "ticket-qr")
        await self._send("registration", msg)

    async def send_check_in_confirmation(
        self,
        to: str,
        user_name: str,
        event_title: str,
        event_date: str,
        event_time: str,
        event_location: str,
        verified_at: str,
    ) -> None:
        rows = [
            ("Event:", event_title),
            ("Date:", event_date),
            ("Time:", event_time),
            ("Location:", event_location),
            ("Checked In At:", verified_at),
        ]
        subject = f"Check-In Confirmed: {event_title}"
        text = (
            f"Dear {user_name},\n\n"
            "You have been successfully checked in!\n\n"
            f"Event Information:\n{_details_text(rows)}\n\n"
            f"Thank you for attending {event_title}!\n"
        )
        body = (
            f"<p>Dear {escape(user_name)},</p>"
            "<p><strong>Welcome to the event!</strong> You have been successfully checked in.</p>"
            f"{_details_table(rows)}"
            f"<p>Thank you for attending {escape(event_title)}!</p>"
        )
        html = _PAGE.format(accent="#4caf50", heading="Check-In Successful!", body=body)
        await self._send("check_in", self._build(subject, text, html, to=to))

    async def send_announcement(
        self,
        recipients: Sequence[str],
        subject: str,
        message: str,
        event_title: str,
    ) -> None:
        """One message to every registrant, addressed by BCC."""
        full_subject = f"{event_title}: {subject}"
        text = (
            f"Event Announcement: {event_title}\n\n{subject}\n\n{message}\n\n"
            "---\nThis announcement was sent to all registered attendees.\n"
        )
        body = (
            f"<h2>{escape(subject)}</h2>"
            f'<div style="white-space: pre-wrap;">{escape(message)}</div>'
            "<p>This announcement was sent to all registered attendees.</p>"
        )
        html = _PAGE.format(accent="#667eea", heading=f"Event Announcement: {escape(event_title)}", body=body)
        await self._send("announcement", self._build(full_subject, text, html, bcc=list(recipients)))

    async def check_connection(self) -> bool:
        """Open and close an SMTP session. Used by the health check."""
        if not self.enabled:
            return False

        def _probe() -> None:
            with self._connect() as client:
                client.noop()

        try:
            await run_in_threadpool(_probe)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("email_connection_failed", error=str(e))
            return False
        return True


def _attach_inline_png(msg: EmailMessage, data_url: str, cid: str) -> None:
    prefix = "data:image/png;base64,"
    if not data_url.startswith(prefix):
        return
    html_part = msg.get_payload()[-1]
    html_part.add_related(
        base64.b64decode(data_url[len(prefix):]),
        maintype="image",
        subtype="png",
        cid=f"<{cid}>",
    )


@lru_cache()
def get_email_service() -> EmailService:
    return EmailService(get_settings())
