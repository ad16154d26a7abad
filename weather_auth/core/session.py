"""Session resolution and session cookie management.

A session is a signed ``session``-purpose token stored in an httpOnly cookie.
Sessions are stateless: nothing is stored server-side, and a session ends
only when its token expires or the client drops the cookie. There is no
server-side revocation.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection
from starlette.responses import Response

from weather_auth.core.config import settings
from weather_auth.core.tokens import TokenPurpose, default_ttl, verify_token
from weather_auth.models.user import User
from weather_auth.repositories.user_repository import UserRepository


def session_cookie_value(connection: HTTPConnection) -> str | None:
    """Read the raw session cookie from a request, if present."""
    return connection.cookies.get(settings.session_cookie_name) or None


async def resolve_session(db: AsyncSession, cookie_value: str | None) -> User | None:
    """Map a session cookie value to the authenticated user.

    Absence of a session is not exceptional: every failure (no cookie,
    invalid or expired token, wrong purpose, malformed subject, deleted
    user) returns None.

    Args:
        db: Async database session.
        cookie_value: Raw value of the session cookie.

    Returns:
        The User the session belongs to, or None.
    """
    if not cookie_value:
        return None

    payload = verify_token(cookie_value, TokenPurpose.SESSION)
    if payload is None:
        return None

    try:
        user_id = uuid.UUID(payload.subject)
    except ValueError:
        return None

    return await UserRepository.get_by_id(db, user_id)


def set_session_cookie(response: Response, token: str) -> None:
    """Set the httpOnly session cookie on a response.

    Security: httpOnly prevents XSS cookie theft, SameSite=Lax blocks
    cross-site POSTs, and Secure is on in production.

    Args:
        response: Response object.
        token: Signed session token.
    """
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
        max_age=int(default_ttl(TokenPurpose.SESSION).total_seconds()),
    )


def clear_session_cookie(response: Response) -> None:
    """Delete the session cookie.

    Cookie attributes must match set_session_cookie() for the browser to
    delete it.
    """
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.session_cookie_samesite,
    )
