"""
Tests for outbound email composition and the disabled-transport path.
"""

import smtplib

import pytest

from checkin.core.config import Settings
from checkin.core.exceptions import EmailDeliveryError
from checkin.services.email_service import EmailService
from checkin.services.ticket_service import render_qr_data_url


class CapturingEmailService(EmailService):
    """Captures built messages instead of opening an SMTP connection."""

    def __init__(self, settings: Settings, fail: bool = False):
        super().__init__(settings)
        self.sent = []
        self.fail = fail

    def _deliver_sync(self, msg) -> None:
        if self.fail:
            raise smtplib.SMTPServerDisconnected("connection lost")
        self.sent.append(msg)


def _settings(**overrides) -> Settings:
    return Settings(EMAIL_ENABLED=True, EMAIL_FROM_ADDRESS="events@example.com", **overrides)


@pytest.mark.asyncio
async def test_registration_confirmation_embeds_qr():
    service = CapturingEmailService(_settings())
    await service.send_registration_confirmation(
        to="guest@example.com",
        user_name="Guest",
        event_title="Launch Party",
        event_date="2030-06-15",
        event_time="18:30",
        event_location="Rooftop",
        ticket_uuid="abc-123",
        qr_code_data_url=render_qr_data_url("abc-123"),
    )

    assert len(service.sent) == 1
    msg = service.sent[0]
    assert msg["To"] == "guest@example.com"
    assert msg["Subject"] == "Registration Confirmed: Launch Party"
    images = [part for part in msg.walk() if part.get_content_type() == "image/png"]
    assert len(images) == 1
    assert images[0]["Content-ID"] == "<ticket-qr>"


@pytest.mark.asyncio
async def test_announcement_uses_bcc():
    service = CapturingEmailService(_settings())
    await service.send_announcement(
        ["a@example.com", "b@example.com"], "Parking", "Use lot B.", "Launch Party"
    )

    msg = service.sent[0]
    assert msg["Subject"] == "Launch Party: Parking"
    assert msg["Bcc"] == "a@example.com, b@example.com"
    assert "a@example.com" not in msg["To"]


@pytest.mark.asyncio
async def test_html_is_escaped():
    service = CapturingEmailService(_settings())
    await service.send_announcement(["a@example.com"], "<b>Hi</b>", "<script>x</script>", "Party")

    html = service.sent[0].get_body(preferencelist=("html",)).get_content()
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


@pytest.mark.asyncio
async def test_disabled_email_is_skipped():
    service = CapturingEmailService(Settings(EMAIL_ENABLED=False))
    await service.send_check_in_confirmation(
        to="guest@example.com",
        user_name="Guest",
        event_title="Launch Party",
        event_date="2030-06-15",
        event_time="18:30",
        event_location="Rooftop",
        verified_at="2030-06-15T18:31:00",
    )
    assert service.sent == []


@pytest.mark.asyncio
async def test_transport_failure_raises_delivery_error():
    service = CapturingEmailService(_settings(), fail=True)
    with pytest.raises(EmailDeliveryError):
        await service.send_announcement(["a@example.com"], "Hi", "Hello", "Party")


class _RecordingSMTP:
    """Stands in for smtplib.SMTP and records whether it was closed."""

    instances = []

    def __init__(self, host, port, timeout=None):
        self.closed = False
        _RecordingSMTP.instances.append(self)

    def starttls(self):
        pass

    def login(self, user, password):
        raise smtplib.SMTPAuthenticationError(535, b"authentication failed")

    def close(self):
        self.closed = True


@pytest.fixture
def recording_smtp(monkeypatch):
    _RecordingSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", _RecordingSMTP)
    return _RecordingSMTP


def test_connect_closes_socket_when_login_fails(recording_smtp):
    service = EmailService(_settings(SMTP_USE_SSL=False, SMTP_USERNAME="mailer", SMTP_PASSWORD="wrong"))
    with pytest.raises(smtplib.SMTPAuthenticationError):
        service._connect()
    assert len(recording_smtp.instances) == 1
    assert recording_smtp.instances[0].closed is True


def test_connect_closes_socket_when_starttls_fails(recording_smtp, monkeypatch):
    def refuse_tls(self):
        raise smtplib.SMTPNotSupportedError("STARTTLS extension not supported by server")

    monkeypatch.setattr(_RecordingSMTP, "starttls", refuse_tls)
    service = EmailService(_settings(SMTP_USE_SSL=False))
    with pytest.raises(smtplib.SMTPNotSupportedError):
        service._connect()
    assert recording_smtp.instances[0].closed is True


@pytest.mark.asyncio
async def test_failed_handshake_surfaces_as_delivery_error(recording_smtp):
    service = EmailService(_settings(SMTP_USE_SSL=False, SMTP_USERNAME="mailer", SMTP_PASSWORD="wrong"))
    with pytest.raises(EmailDeliveryError):
        await service.send_announcement(["a@example.com"], "Hi", "Hello", "Party")
    assert recording_smtp.instances[0].closed is True
