"""
Transactional email via Resend.

The Resend SDK is synchronous, so delivery runs on the shared thread pool.
Callers decide whether a failure matters; notification emails in this
backend are always best-effort.
"""
from __future__ import annotations

import html
import logging
from typing import Optional, Protocol

import resend

from domain.errors import UpstreamServiceError
from services.async_executor import run_blocking

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    async def send(self, to: str, subject: str, html_body: str) -> None:
        ...


class ResendMailer:
    def __init__(self, api_key: str, sender: str):
        self.api_key = api_key
        self.sender = sender

    def _send_sync(self, payload: dict):
        resend.api_key = self.api_key
        return resend.Emails.send(payload)

    async def send(self, to: str, subject: str, html_body: str) -> None:
        """
        Deliver one email.

        Raises:
            UpstreamServiceError: not configured, or Resend rejected the message
        """
        if not self.api_key:
            logger.error(f"RESEND_API_KEY not configured — dropping email to {to}")
            raise UpstreamServiceError("Email delivery is not configured")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        try:
            response = await run_blocking(self._send_sync, payload)
        except Exception as e:
            logger.error(f"Email delivery to {to} failed: {e}")
            raise UpstreamServiceError("Email delivery failed") from e

        message_id = response.get("id") if isinstance(response, dict) else None
        logger.info(f"Email sent to {to} (id={message_id})")


# ── Templates ───────────────────────────────────────────────────────


def _format_naira(amount_minor: Optional[int]) -> str:
    if amount_minor is None:
        return ""
    return f"₦{amount_minor / 100:,.2f}"


def payment_confirmation(
    site_name: str,
    service_name: Optional[str],
    reference: str,
    amount_minor: Optional[int],
) -> tuple[str, str]:
    """Subject and HTML body sent after a verified charge.success."""
    service = html.escape(service_name or "your registration")
    amount = _format_naira(amount_minor)
    subject = f"{site_name}: payment received"
    body = (
        f"<h2>Payment confirmed</h2>"
        f"<p>We have received your payment{f' of <strong>{amount}</strong>' if amount else ''} "
        f"for <strong>{service}</strong>.</p>"
        f"<p>Reference: <code>{html.escape(reference)}</code></p>"
        f"<p>Our team will begin processing your application shortly. "
        f"You can track progress on our website with this reference.</p>"
        f"<p>— {html.escape(site_name)}</p>"
    )
    return subject, body


def application_completed(site_name: str, business_name: str) -> tuple[str, str]:
    """Subject and HTML body sent when an admin marks an application completed."""
    name = html.escape(business_name)
    subject = f"{site_name}: {business_name} registration completed"
    body = (
        f"<h2>Registration completed</h2>"
        f"<p>Good news — the registration for <strong>{name}</strong> is complete.</p>"
        f"<p>Your documents will be shared with you by our agent. "
        f"Reply to this email if you have any questions.</p>"
        f"<p>— {html.escape(site_name)}</p>"
    )
    return subject, body
