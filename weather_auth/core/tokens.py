"""Signed, time-limited tokens for sessions, password resets and email checks.

Every token is an HS256 JWT carrying ``sub``, ``purpose``, ``iat`` and ``exp``
plus fixed ``aud``/``iss`` claims. The purpose tag binds a token to one use:
a reset token is never accepted where a session token is expected, and
vice versa.

Reset and verification tokens also carry the ``email`` they were mailed to,
so a token stops working once the account moves to another address.

verify_token() fails closed. Malformed input, a bad signature, expiry, a
wrong audience/issuer, missing claims and a purpose mismatch all collapse
to ``None`` so callers cannot tell clients *why* a token was refused.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

import jwt

from weather_auth.core.config import settings

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "purpose", "iat", "exp", "aud", "iss"]


class TokenPurpose(str, Enum):
    """What a token may be used for."""

    SESSION = "session"
    RESET = "reset"
    VERIFY = "verify"


@dataclass(frozen=True)
class TokenPayload:
    """Verified token contents.

    Attributes:
        subject: User id the token was issued for.
        purpose: Purpose tag the token was minted with.
        issued_at: Issue time (UTC, whole seconds).
        expires_at: Expiry time (UTC, whole seconds).
        email: Address the token was mailed to, if bound to one.
    """

    subject: str
    purpose: TokenPurpose
    issued_at: datetime
    expires_at: datetime
    email: str | None = None


def default_ttl(purpose: TokenPurpose) -> timedelta:
    """Return the configured lifetime for a token purpose.

    Session tokens live 30 days, reset tokens 1 hour and verification
    tokens 24 hours unless overridden in settings.
    """
    if purpose is TokenPurpose.SESSION:
        return timedelta(days=settings.session_ttl_days)
    if purpose is TokenPurpose.RESET:
        return timedelta(minutes=settings.reset_token_ttl_minutes)
    return timedelta(hours=settings.verify_token_ttl_hours)


def _secret(secret: str | None) -> str:
    return secret if secret is not None else settings.auth_secret.get_secret_value()


def issue_token(
    subject: str,
    purpose: TokenPurpose,
    ttl: timedelta | None = None,
    *,
    email: str | None = None,
    secret: str | None = None,
    now: datetime | None = None,
) -> str:
    """Create a signed token.

    Args:
        subject: User id for the ``sub`` claim.
        purpose: Purpose tag embedded in the token.
        ttl: Lifetime. Defaults to default_ttl(purpose).
        email: Address to bind the token to (reset and verify links).
        secret: HMAC signing secret. Defaults to settings.auth_secret.
        now: Issue time. Defaults to the current time.

    Returns:
        Encoded JWT string.
    """
    issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
    payload = {
        "sub": subject,
        "purpose": purpose.value,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "iat": issued_at,
        "exp": issued_at + (ttl if ttl is not None else default_ttl(purpose)),
    }
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, _secret(secret), algorithm=_ALGORITHM)


def verify_token(
    token: str,
    expected_purpose: TokenPurpose,
    *,
    secret: str | None = None,
) -> TokenPayload | None:
    """Verify a token and return its payload.

    Args:
        token: Encoded JWT string.
        expected_purpose: Purpose the caller is willing to accept.
        secret: HMAC signing secret. Defaults to settings.auth_secret.

    Returns:
        TokenPayload when the token is authentic, unexpired and minted for
        expected_purpose. None otherwise.
    """
    try:
        claims = jwt.decode(
            token,
            _secret(secret),
            algorithms=[_ALGORITHM],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.InvalidTokenError as exc:
        logger.debug("Token rejected: %s", type(exc).__name__)
        return None

    if claims.get("purpose") != expected_purpose.value:
        logger.debug("Token rejected: purpose mismatch")
        return None

    subject = claims["sub"]
    if not isinstance(subject, str) or not subject:
        return None

    email = claims.get("email")
    if email is not None and not isinstance(email, str):
        return None

    return TokenPayload(
        subject=subject,
        purpose=expected_purpose,
        issued_at=datetime.fromtimestamp(claims["iat"], UTC),
        expires_at=datetime.fromtimestamp(claims["exp"], UTC),
        email=email,
    )
