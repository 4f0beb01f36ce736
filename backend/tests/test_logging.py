"""
Tests for log redaction.
"""

from checkin.core.logging import MASK, mask_sensitive


def test_credentials_are_masked():
    event = mask_sensitive(
        None,
        "info",
        {"event": "login_failed", "email": "a@example.com", "password": "hunter22", "token": "abc"},
    )
    assert event["password"] == MASK
    assert event["token"] == MASK
    assert event["email"] == "a@example.com"


def test_events_without_credentials_untouched():
    event = {"event": "registration_created", "event_id": 1}
    assert mask_sensitive(None, "info", dict(event)) == event
