"""Email sending via Resend API.

Simple HTTP POST to Resend for verification and password reset emails.
Without RESEND_API_KEY the transport runs in log-only mode: the send is
logged (recipient and subject only) and reported as successful.

Delivery failures are logged and reported as ``False``; they are never
raised to the caller.
"""

import logging
from html import escape
from urllib.parse import urlencode

import httpx

from weather_auth.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def send_email(*, to: str, subject: str, html_body: str) -> bool:
    """Send one HTML email.

    Args:
        to: Recipient email address.
        subject: Subject line.
        html_body: HTML body.

    Returns:
        True if the provider accepted the message (or log-only mode),
        False on any delivery failure.
    """
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.info("Email log-only mode: %r to %s", subject, to)
        return True

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "from": settings.email_from,
                    "to": to,
                    "subject": subject,
                    "html": html_body,
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except Exception:
        logger.warning("Failed to send email %r", subject, exc_info=True)
        return False
    return True


def _frontend_link(path: str, token: str) -> str:
    return f"{settings.frontend_url}{path}?{urlencode({'token': token})}"


async def send_verification_email(
    *, to_email: str, token: str, first_name: str | None = None
) -> bool:
    """Send the email-verification link.

    Args:
        to_email: Recipient email address.
        token: Signed ``verify``-purpose token.
        first_name: Greeting name; defaults to "there".
    """
    link = _frontend_link("/auth/verify", token)
    name = escape(first_name or "there")
    hours = settings.verify_token_ttl_hours
    return await send_email(
        to=to_email,
        subject="Verify your email - Weather App",
        html_body=(
            f"<h2>Welcome to Weather App, {name}!</h2>"
            "<p>Please verify your email by clicking the link below:</p>"
            f'<p><a href="{escape(link)}">Verify email</a></p>'
            f"<p>This link expires in {hours} hours.</p>"
        ),
    )


async def send_password_reset_email(
    *, to_email: str, token: str, first_name: str | None = None
) -> bool:
    """Send the password reset link.

    Args:
        to_email: Recipient email address.
        token: Signed ``reset``-purpose token.
        first_name: Greeting name; defaults to "there".
    """
    link = _frontend_link("/auth/reset", token)
    name = escape(first_name or "there")
    minutes = settings.reset_token_ttl_minutes
    return await send_email(
        to=to_email,
        subject="Reset your password - Weather App",
        html_body=(
            f"<h2>Hello {name},</h2>"
            "<p>We received a request to reset your password. "
            "Click the link below to proceed:</p>"
            f'<p><a href="{escape(link)}">Reset password</a></p>'
            f"<p>This link expires in {minutes} minutes.</p>"
            "<p>If you didn't request this, you can safely ignore this email.</p>"
        ),
    )
