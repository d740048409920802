"""
E-mail notification dispatch with provider fallback.

Providers are plain tagged records (``EmailProvider``) holding only their own
credential; ``send_email`` dispatches on the tag. ``NotificationDispatcher``
walks an explicit ordered list of providers and stops at the first success.
Each provider is attempted at most once per send, with a bounded timeout.
"""

import logging
from html import escape
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

import requests

from .exceptions import DeliveryError

logger = logging.getLogger(__name__)

DEFAULT_FROM_EMAIL = "alerts@healthmonitor.local"
DEFAULT_TIMEOUT = 10.0


class ProviderKind(Enum):
    RESEND = "resend"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"


@dataclass(frozen=True)
class EmailProvider:
    kind: ProviderKind
    api_key: Optional[str] = None
    domain: Optional[str] = None  # Mailgun only
    from_email: str = DEFAULT_FROM_EMAIL
    timeout: float = DEFAULT_TIMEOUT

    @property
    def name(self):
        return self.kind.value


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    provider: Optional[str] = None
    failures: List[DeliveryError] = field(default_factory=list)

    def raise_for_failure(self):
        if not self.success:
            detail = "; ".join(f"{f.provider}: {f}" for f in self.failures) or "no providers configured"
            raise DeliveryError(f"All e-mail providers failed ({detail})", failures=self.failures)
        return self


def _resend_request(provider, recipients, subject, html):
    return {
        "url": "https://api.resend.com/emails",
        "headers": {"Authorization": f"Bearer {provider.api_key}"},
        "json": {"from": provider.from_email, "to": list(recipients), "subject": subject, "html": html},
    }


def _sendgrid_request(provider, recipients, subject, html):
    return {
        "url": "https://api.sendgrid.com/v3/mail/send",
        "headers": {"Authorization": f"Bearer {provider.api_key}"},
        "json": {
            "personalizations": [{"to": [{"email": email} for email in recipients]}],
            "from": {"email": provider.from_email},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        },
    }


def _mailgun_request(provider, recipients, subject, html):
    if not provider.domain:
        raise DeliveryError("Mailgun domain not configured", provider=provider.name)
    return {
        "url": f"https://api.mailgun.net/v3/{provider.domain}/messages",
        "auth": ("api", provider.api_key),
        "data": {"from": provider.from_email, "to": list(recipients), "subject": subject, "html": html},
    }


REQUEST_BUILDERS = {
    ProviderKind.RESEND: _resend_request,
    ProviderKind.SENDGRID: _sendgrid_request,
    ProviderKind.MAILGUN: _mailgun_request,
}


def send_email(provider: EmailProvider, recipients: Sequence[str], subject: str, html: str, session=None):
    """Deliver one message through ``provider``; raise ``DeliveryError`` on any failure."""
    if not provider.api_key:
        raise DeliveryError(f"{provider.name} API key not configured", provider=provider.name)
    request = REQUEST_BUILDERS[provider.kind](provider, recipients, subject, html)
    session = session or requests
    try:
        response = session.post(timeout=provider.timeout, **request)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise DeliveryError(f"{provider.name} request failed: {exc}", provider=provider.name) from exc
    return response


Sender = Callable[[EmailProvider, Sequence[str], str, str], object]


class NotificationDispatcher:
    def __init__(self, providers: Sequence[EmailProvider], sender: Sender = send_email):
        self.providers = list(providers)
        self.sender = sender

    def send(self, recipients: Sequence[str], subject: str, message: str) -> DispatchResult:
        recipients = [r for r in dict.fromkeys(recipients) if r]
        if not recipients:
            return DispatchResult(success=False, failures=[DeliveryError("No recipients")])

        failures = []
        for provider in self.providers:
            try:
                self.sender(provider, recipients, subject, message)
            except DeliveryError as exc:
                exc.provider = exc.provider or provider.name
                logger.warning("E-mail via %s failed, trying next provider: %s", provider.name, exc)
                failures.append(exc)
                continue
            logger.info("E-mail sent via %s to %d recipient(s)", provider.name, len(recipients))
            return DispatchResult(success=True, provider=provider.name, failures=failures)

        logger.error("All %d e-mail providers failed", len(self.providers))
        return DispatchResult(success=False, failures=failures)


def build_providers(names, credentials, from_email=DEFAULT_FROM_EMAIL, timeout=DEFAULT_TIMEOUT):
    """Create providers in the configured fallback order."""
    providers = []
    for name in names:
        kind = ProviderKind(name.lower())
        options = credentials.get(kind.value, {})
        providers.append(
            EmailProvider(
                kind=kind,
                api_key=options.get("api_key"),
                domain=options.get("domain"),
                from_email=from_email,
                timeout=timeout,
            )
        )
    return providers


def maps_url(latitude, longitude):
    return f"https://www.google.com/maps?q={latitude},{longitude}"


def emergency_message(patient_name, latitude=None, longitude=None):
    subject = f"Emergency Alert - {patient_name}"
    if latitude is not None and longitude is not None:
        location_line = f"Current Location: {maps_url(latitude, longitude)}"
    else:
        location_line = "Location: Unavailable"
    body = f"Emergency Alert: {patient_name} is in distress!\n{location_line}\nPlease check immediately."
    return subject, body


def render_html(message):
    paragraphs = "".join(f"<p>{escape(line)}</p>" for line in message.splitlines() if line)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h1 style="color: #dc3545;">Emergency Alert</h1>'
        f"{paragraphs}"
        "<p><strong>Immediate Action Required.</strong> "
        "Please contact the patient or emergency services immediately.</p>"
        '<p style="color: #888;">This is an automated emergency alert from your health monitoring system.</p>'
        "</div>"
    )
