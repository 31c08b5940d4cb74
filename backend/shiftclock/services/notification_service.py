"""
Notification Service – e-mail delivery via SendGrid.

Graceful degradation: without SENDGRID_API_KEY every send fails with
NotifierError, which the reminder sweep logs and retries on its next tick.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from shiftclock.core.config import Settings
from shiftclock.core.exceptions import NotifierError

logger = logging.getLogger(__name__)

TEMPLATE_SHIFT_OVERDUE = "shift_overdue"


class Notifier(Protocol):
    async def send(self, contact_address: str, template_id: str, context: dict[str, Any]) -> None:
        """Deliver one message; raises NotifierError on failure."""
        ...


def _fmt_hours(hours: float) -> str:
    return f"{hours:g}"


def render_shift_overdue(context: dict[str, Any]) -> tuple[str, str, str]:
    username = context.get("username") or "there"
    required = _fmt_hours(context["required_hours"])
    subject = "Shift Ended - Please Punch Out"
    text = (
        f"Hello {username},\n\n"
        f"Your shift of {required} hours has ended. Please remember to punch out.\n"
        f"Punched in at {context['punch_in']} ({context['elapsed_hours']:.2f} hours ago).\n\n"
        f"Ignore this message if you are doing overtime."
    )
    html = (
        f"<h2>Shift Ended Reminder</h2>"
        f"<p>Hello <b>{username}</b>,</p>"
        f"<p>Your shift of {required} hours has ended. Please remember to punch out.</p>"
        f"<p>Punched in at {context['punch_in']}.</p>"
        f"<br><p><i>Ignore this message if you are doing overtime.</i></p>"
    )
    return subject, text, html


TEMPLATES = {
    TEMPLATE_SHIFT_OVERDUE: render_shift_overdue,
}


def render(template_id: str, context: dict[str, Any]) -> tuple[str, str, str]:
    try:
        renderer = TEMPLATES[template_id]
    except KeyError:
        raise NotifierError(f"unknown template {template_id!r}")
    return renderer(context)


class EmailNotifier:

    def __init__(self, api_key: str, from_email: str, *, timeout: float = 10.0):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier":
        return cls(
            settings.SENDGRID_API_KEY,
            settings.SENDGRID_FROM_EMAIL,
            timeout=settings.NOTIFIER_TIMEOUT_SECONDS,
        )

    async def send(self, contact_address: str, template_id: str, context: dict[str, Any]) -> None:
        if not self.api_key:
            raise NotifierError("SENDGRID_API_KEY is not configured")
        if not self.from_email:
            raise NotifierError("SENDGRID_FROM_EMAIL is not configured")

        subject, text, html = render(template_id, context)

        from sendgrid import SendGridAPIClient
        from sendgrid.helpers.mail import Mail

        mail = Mail(
            from_email=self.from_email,
            to_emails=contact_address,
            subject=subject,
            plain_text_content=text,
            html_content=html,
        )
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(SendGridAPIClient(self.api_key).send, mail),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NotifierError(f"sending to {contact_address} timed out after {self.timeout}s") from e
        except Exception as e:
            raise NotifierError(str(e)[:200]) from e

        status_code = getattr(response, "status_code", 202)
        if status_code >= 300:
            raise NotifierError(f"SendGrid answered {status_code}")
        logger.debug("Mail %s sent to %s", template_id, contact_address)
