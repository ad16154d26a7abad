"""Shared dependencies for API endpoints.

Session-backed user resolution, database sessions, and the background
mailer handed to AuthService.

get_db and get_mailer are the override points for alternate databases and
mailers.
"""

from typing import Annotated

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from weather_auth.core.database import get_db
from weather_auth.core.email import send_password_reset_email, send_verification_email
from weather_auth.core.errors import UnauthorizedError
from weather_auth.core.session import resolve_session, session_cookie_value
from weather_auth.models.user import User
from weather_auth.services.auth_service import AuthService, Mailer


class BackgroundMailer:
    """Mailer that defers delivery until after the response is sent.

    Delivery failures are logged by the email transport and never reach
    the client.
    """

    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._tasks = background_tasks

    def send_verification_email(
        self, *, to_email: str, token: str, first_name: str | None
    ) -> None:
        self._tasks.add_task(
            send_verification_email,
            to_email=to_email,
            token=token,
            first_name=first_name,
        )

    def send_password_reset_email(
        self, *, to_email: str, token: str, first_name: str | None
    ) -> None:
        self._tasks.add_task(
            send_password_reset_email,
            to_email=to_email,
            token=token,
            first_name=first_name,
        )


def get_mailer(background_tasks: BackgroundTasks) -> Mailer:
    """Provide the non-blocking mailer for the current request."""
    return BackgroundMailer(background_tasks)


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_optional_user(request: Request, db: DbSession) -> User | None:
    """Get the session user, or None for anonymous requests.

    Reuses the user resolved by RouteGuardMiddleware when present; public
    paths skip the guard's lookup, so resolve here in that case.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return user
    return await resolve_session(db, session_cookie_value(request))


async def get_current_user(
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    """Get the session user or fail with 401.

    Raises:
        UnauthorizedError: No valid session.
    """
    if user is None:
        raise UnauthorizedError()
    return user


def get_auth_service(
    db: DbSession,
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> AuthService:
    """Build the request-scoped AuthService."""
    return AuthService(db, mailer)


# Reusable type aliases for dependency injection
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
CurrentUser = Annotated[User, Depends(get_current_user)]
Auth = Annotated[AuthService, Depends(get_auth_service)]
