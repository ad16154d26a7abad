"""Authentication use cases.

Register, login, password reset, email verification, profile update and
verification resend. Each use case owns its transaction: state changes are
committed before the outbound email is handed off, and the email hand-off
never fails the use case.

Anti-enumeration: login failures share one error, and the reset/resend
flows return nothing that depends on whether the email is registered.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from weather_auth.core.errors import (
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    UnauthorizedError,
    ValidationError,
)
from weather_auth.core.passwords import (
    burn_password_check,
    hash_password,
    validate_password,
    verify_password,
)
from weather_auth.core.tokens import (
    TokenPayload,
    TokenPurpose,
    issue_token,
    verify_token,
)
from weather_auth.models.user import User
from weather_auth.repositories.user_repository import UserRepository

logger = structlog.get_logger()


class Mailer(Protocol):
    """Outbound email collaborator.

    Implementations must not block the caller; the HTTP layer schedules
    sends as background tasks.
    """

    def send_verification_email(
        self, *, to_email: str, token: str, first_name: str | None
    ) -> None: ...

    def send_password_reset_email(
        self, *, to_email: str, token: str, first_name: str | None
    ) -> None: ...


@dataclass(frozen=True)
class LoginResult:
    """Authenticated user plus the session token to put in the cookie."""

    user: User
    session_token: str


def _required(value: str | None) -> str:
    return (value or "").strip()


class AuthService:
    """Authentication use cases over the credential store.

    Args:
        db: Async database session.
        mailer: Non-blocking email collaborator.
    """

    def __init__(self, db: AsyncSession, mailer: Mailer) -> None:
        self._db = db
        self._mailer = mailer

    # -----------------------------------------------------------------------
    # Register / login
    # -----------------------------------------------------------------------

    async def register(
        self,
        *,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
        password: str | None,
    ) -> User:
        """Create an unverified account and send the verification email.

        Does not log the user in.

        Returns:
            The created User.

        Raises:
            ValidationError: A field is missing or the password is too short.
            ConflictError: EMAIL_ALREADY_EXISTS if the email is taken.
        """
        first = _required(first_name)
        last = _required(last_name)
        address = _required(email)
        if not (first and last and address and password):
            raise ValidationError("All fields are required")
        validate_password(password)

        password_hash = await run_in_threadpool(hash_password, password)
        user = await UserRepository.create(
            self._db,
            email=address,
            first_name=first,
            last_name=last,
            password_hash=password_hash,
        )
        await self._db.commit()
        logger.info("User registered", user_id=str(user.id))

        self._send_verification(user)
        return user

    async def login(self, *, email: str, password: str) -> LoginResult:
        """Check credentials and mint a session token.

        Raises:
            InvalidCredentialsError: Unknown email, passwordless account, or
                wrong password. The three cases are indistinguishable.
        """
        user = await UserRepository.get_by_email(self._db, email)

        if user is None or user.password_hash is None:
            # Security: always spend bcrypt time so response timing does not
            # reveal whether the account exists.
            await run_in_threadpool(burn_password_check, password)
            raise InvalidCredentialsError()

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.info("Login failed", user_id=str(user.id))
            raise InvalidCredentialsError()

        token = issue_token(str(user.id), TokenPurpose.SESSION)
        logger.info("User logged in", user_id=str(user.id))
        return LoginResult(user=user, session_token=token)

    # -----------------------------------------------------------------------
    # Password reset
    # -----------------------------------------------------------------------

    async def request_password_reset(self, *, email: str) -> None:
        """Send a reset link if the account exists.

        Returns nothing either way; the token travels only through the
        mailer.
        """
        user = await UserRepository.get_by_email(self._db, email)
        if user is None:
            return

        token = issue_token(str(user.id), TokenPurpose.RESET, email=user.email)
        self._mailer.send_password_reset_email(
            to_email=user.email,
            token=token,
            first_name=user.first_name,
        )
        logger.info("Password reset requested", user_id=str(user.id))

    async def reset_password(self, *, token: str, new_password: str) -> User:
        """Replace the password using a reset token.

        Also marks the email verified when it was not: holding a reset token
        proves control of the inbox it was sent to.
        A token mailed to an address the account no longer uses is refused.

        Raises:
            InvalidOrExpiredTokenError: Token invalid, expired, not a reset
                token, its user no longer exists, or the account email has
                changed since it was sent.
            ValidationError: New password too short.
        """
        payload = verify_token(token, TokenPurpose.RESET)
        if payload is None:
            raise InvalidOrExpiredTokenError()

        validate_password(new_password)

        user = await self._user_for_token(payload)
        if user is None:
            raise InvalidOrExpiredTokenError()

        password_hash = await run_in_threadpool(hash_password, new_password)
        await UserRepository.update_password(self._db, user.id, password_hash)
        if user.email_verified_at is None:
            await UserRepository.mark_email_verified(
                self._db, user.id, datetime.now(UTC)
            )
        await self._db.commit()

        logger.info("Password reset", user_id=str(user.id))
        return user

    # -----------------------------------------------------------------------
    # Email verification
    # -----------------------------------------------------------------------

    async def verify_email(self, *, token: str) -> User:
        """Mark the token's user as verified.

        Idempotent: an already verified user keeps the original timestamp.

        Raises:
            InvalidTokenError: Token invalid, expired, not a verification
                token, its user no longer exists, or it was sent to an
                address the account no longer uses.
        """
        payload = verify_token(token, TokenPurpose.VERIFY)
        if payload is None:
            raise InvalidTokenError()

        user = await self._user_for_token(payload)
        if user is None:
            raise InvalidTokenError()

        if user.email_verified_at is None:
            await UserRepository.mark_email_verified(
                self._db, user.id, datetime.now(UTC)
            )
            await self._db.commit()
            logger.info("Email verified", user_id=str(user.id))

        return user

    async def resend_verification(self, *, email: str) -> None:
        """Re-send the verification link to an unverified account.

        Silent for unknown or already verified emails.
        """
        user = await UserRepository.get_by_email(self._db, email)
        if user is None or user.email_verified_at is not None:
            return
        self._send_verification(user)

    # -----------------------------------------------------------------------
    # Profile
    # -----------------------------------------------------------------------

    async def update_profile(
        self,
        user_id: uuid.UUID,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> User:
        """Update display names and/or email.

        Omitted fields are left unchanged. A new email address resets
        verification and triggers a fresh verification email.

        Raises:
            ValidationError: A provided field is blank.
            ConflictError: EMAIL_ALREADY_EXISTS if the new email is taken.
        """
        provided = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
        }
        fields = {k: v.strip() for k, v in provided.items() if v is not None}
        blank = sorted(k for k, v in fields.items() if not v)
        if blank:
            raise ValidationError(f"Fields must not be empty: {', '.join(blank)}")

        user = await UserRepository.get_by_id(self._db, user_id)
        if user is None:
            raise UnauthorizedError()
        previous_email = user.email

        updated = await UserRepository.update_profile(self._db, user_id, **fields)
        if updated is None:
            raise UnauthorizedError()
        await self._db.commit()

        if updated.email != previous_email:
            self._send_verification(updated)
        return updated

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _user_for_token(self, payload: TokenPayload) -> User | None:
        """Load the token's user, if it still owns the address the token went to."""
        try:
            user_id = uuid.UUID(payload.subject)
        except ValueError:
            return None
        user = await UserRepository.get_by_id(self._db, user_id)
        if user is None:
            return None
        if payload.email != user.email:
            logger.info("Token email no longer matches account", user_id=str(user.id))
            return None
        return user

    def _send_verification(self, user: User) -> None:
        token = issue_token(str(user.id), TokenPurpose.VERIFY, email=user.email)
        self._mailer.send_verification_email(
            to_email=user.email,
            token=token,
            first_name=user.first_name,
        )
