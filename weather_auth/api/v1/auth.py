"""Authentication endpoints.

Endpoints:
- POST /auth/register: create account, send verification email
- POST /auth/login: verify credentials, set session cookie
- POST /auth/logout: clear session cookie
- GET /auth/me: current user or null
- POST /auth/request-reset: send password reset email
- POST /auth/reset: set new password with reset token
- GET|POST /auth/verify: verify email with verification token
- POST /auth/resend-verification: re-send verification email

Security considerations:
- login: one generic 401 for unknown email, passwordless account and wrong
  password, with constant bcrypt work in every branch
- request-reset / resend-verification: identical response whether or not
  the email is registered; tokens travel only by email
- logout: sessions are stateless, so clearing the cookie is the whole job
"""

from typing import Annotated

from fastapi import APIRouter, Query, Request, Response

from weather_auth.api.deps import Auth, OptionalUser
from weather_auth.core.config import settings
from weather_auth.core.rate_limiting import limiter
from weather_auth.core.responses import DataResponse, MessagePayload
from weather_auth.core.session import clear_session_cookie, set_session_cookie
from weather_auth.schemas.auth import (
    CurrentUserPayload,
    EmailRequest,
    LoginRequest,
    RegisterPayload,
    RegisterRequest,
    ResetPasswordRequest,
    UserPayload,
    VerifyEmailRequest,
)

router = APIRouter()

_RESET_REQUESTED_MSG = "If that email exists, you will receive reset instructions"
_VERIFICATION_RESENT_MSG = (
    "If that email belongs to an unverified account, a new link has been sent"
)


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201)
@limiter.limit(lambda: settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    auth: Auth,
) -> DataResponse[RegisterPayload]:
    """Register a new user with names, email and password.

    Unauthenticated. The account starts unverified and the user is not
    logged in; a verification link is emailed in the background.
    """
    user = await auth.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    return DataResponse(
        data=RegisterPayload(
            message="User created successfully. Check your email to verify your account.",
            user=UserPayload.from_user(user),
        )
    )


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    response: Response,
    auth: Auth,
) -> DataResponse[UserPayload]:
    """Verify email + password and set the session cookie."""
    result = await auth.login(email=body.email, password=body.password)
    set_session_cookie(response, result.session_token)
    return DataResponse(data=UserPayload.from_user(result.user))


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(response: Response) -> DataResponse[MessagePayload]:
    """Clear the session cookie.

    No auth required; clears the cookie regardless.
    """
    clear_session_cookie(response)
    return DataResponse(data=MessagePayload(message="Signed out"))


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def get_me(user: OptionalUser) -> DataResponse[CurrentUserPayload]:
    """Return the current user, or ``{"user": null}`` without a session.

    Absence of a session is not an error here; the web client polls this
    endpoint to decide what to render.
    """
    return DataResponse(
        data=CurrentUserPayload(
            user=UserPayload.from_user(user) if user is not None else None
        )
    )


# ===================================================================
# Password reset
# ===================================================================


@router.post("/request-reset")
@limiter.limit(lambda: settings.rate_limit_reset)
async def request_password_reset(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    auth: Auth,
) -> DataResponse[MessagePayload]:
    """Email a password reset link if the account exists.

    Always returns the same message (enumeration defense).
    """
    await auth.request_password_reset(email=body.email)
    return DataResponse(data=MessagePayload(message=_RESET_REQUESTED_MSG))


@router.post("/reset")
@limiter.limit(lambda: settings.rate_limit_reset)
async def reset_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResetPasswordRequest,
    auth: Auth,
) -> DataResponse[MessagePayload]:
    """Set a new password using a reset token.

    Also marks the email verified. Does not log the user in.
    """
    await auth.reset_password(token=body.token, new_password=body.password)
    return DataResponse(data=MessagePayload(message="Password reset successful"))


# ===================================================================
# Email verification
# ===================================================================


@router.get("/verify")
async def verify_email_link(
    token: Annotated[str, Query(min_length=1, max_length=2048)],
    auth: Auth,
) -> DataResponse[MessagePayload]:
    """Verify an email address from the emailed link."""
    await auth.verify_email(token=token)
    return DataResponse(data=MessagePayload(message="Email verified"))


@router.post("/verify")
async def verify_email(
    body: VerifyEmailRequest,
    auth: Auth,
) -> DataResponse[MessagePayload]:
    """Verify an email address with a token posted by the web client."""
    await auth.verify_email(token=body.token)
    return DataResponse(data=MessagePayload(message="Email verified"))


@router.post("/resend-verification")
@limiter.limit(lambda: settings.rate_limit_reset)
async def resend_verification(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    auth: Auth,
) -> DataResponse[MessagePayload]:
    """Re-send the verification link. Same response for every email."""
    await auth.resend_verification(email=body.email)
    return DataResponse(data=MessagePayload(message=_VERIFICATION_RESENT_MSG))
