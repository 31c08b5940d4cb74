"""
Tests for the e-mail notifier – templates, configuration and SendGrid failures.
SendGrid's client is patched; no network.
"""
import time
from types import SimpleNamespace

import pytest
import sendgrid

from shiftclock.core.exceptions import NotifierError
from shiftclock.services.notification_service import (
    TEMPLATE_SHIFT_OVERDUE,
    EmailNotifier,
    render,
)

CONTEXT = {
    "username": "priya",
    "record_id": 1792400400000,
    "is_half_day": True,
    "required_hours": 4.75,
    "elapsed_hours": 5.1,
    "punch_in": "09:00:00",
}


def test_render_shift_overdue():
    subject, text, html = render(TEMPLATE_SHIFT_OVERDUE, CONTEXT)

    assert subject == "Shift Ended - Please Punch Out"
    assert "Hello priya" in text
    assert "4.75 hours" in text
    assert "09:00:00" in html


def test_render_unknown_template():
    with pytest.raises(NotifierError):
        render("weekly_digest", CONTEXT)


@pytest.mark.asyncio
async def test_send_without_api_key_fails():
    notifier = EmailNotifier("", "shiftclock@example.com")
    with pytest.raises(NotifierError):
        await notifier.send("priya@example.com", TEMPLATE_SHIFT_OVERDUE, CONTEXT)


@pytest.mark.asyncio
async def test_send_delivers_through_sendgrid(monkeypatch):
    sent = []

    def fake_send(self, message):
        sent.append(message)
        return SimpleNamespace(status_code=202)

    monkeypatch.setattr(sendgrid.SendGridAPIClient, "send", fake_send)
    notifier = EmailNotifier("SG.test", "shiftclock@example.com")

    await notifier.send("priya@example.com", TEMPLATE_SHIFT_OVERDUE, CONTEXT)

    assert len(sent) == 1


@pytest.mark.asyncio
async def test_send_error_status_fails(monkeypatch):
    monkeypatch.setattr(
        sendgrid.SendGridAPIClient, "send", lambda self, message: SimpleNamespace(status_code=401)
    )
    notifier = EmailNotifier("SG.test", "shiftclock@example.com")

    with pytest.raises(NotifierError, match="401"):
        await notifier.send("priya@example.com", TEMPLATE_SHIFT_OVERDUE, CONTEXT)


@pytest.mark.asyncio
async def test_send_timeout_fails(monkeypatch):
    def slow_send(self, message):
        time.sleep(0.5)
        return SimpleNamespace(status_code=202)

    monkeypatch.setattr(sendgrid.SendGridAPIClient, "send", slow_send)
    notifier = EmailNotifier("SG.test", "shiftclock@example.com", timeout=0.05)

    with pytest.raises(NotifierError, match="timed out"):
        await notifier.send("priya@example.com", TEMPLATE_SHIFT_OVERDUE, CONTEXT)
