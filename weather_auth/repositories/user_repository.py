"""Repository for User CRUD operations.

Credential store for the users table. Every email is normalized (trimmed,
lowercased) before it is compared or stored, so the unique constraint on
``users.email`` is the single source of truth for case-insensitive
uniqueness.
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from weather_auth.core.errors import ConflictError
from weather_auth.models.user import User

# Fields that may be updated via UserRepository.update_profile().
# Security: never add 'id', 'password_hash' or 'email_verified_at'; those
# change only through update_password() and mark_email_verified().
_PROFILE_FIELDS: frozenset[str] = frozenset(
    {
        "first_name",
        "last_name",
        "email",
    }
)

_EMAIL_EXISTS_CODE = "EMAIL_ALREADY_EXISTS"
_EMAIL_EXISTS_MSG = "Email already registered"


def normalize_email(email: str) -> str:
    """Return the canonical storage form of an email address."""
    return email.strip().lower()


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static: no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == normalize_email(email))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        password_hash: str | None = None,
        email_verified_at: datetime | None = None,
    ) -> User:
        """Create a new user.

        The insert itself enforces uniqueness: two concurrent registrations
        for the same email cannot both pass, because the second flush hits
        the unique constraint. On conflict the session is rolled back.

        Args:
            db: Async database session.
            email: User email address (normalized before storage).
            first_name: Display first name.
            last_name: Display last name.
            password_hash: bcrypt hash (None for passwordless accounts).
            email_verified_at: Timestamp when email was verified.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            ConflictError: EMAIL_ALREADY_EXISTS if the email is taken.
        """
        user = User(
            email=normalize_email(email),
            first_name=first_name,
            last_name=last_name,
            password_hash=password_hash,
            email_verified_at=email_verified_at,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError(
                code=_EMAIL_EXISTS_CODE,
                message=_EMAIL_EXISTS_MSG,
            ) from exc
        await db.refresh(user)
        return user

    @staticmethod
    async def update_password(
        db: AsyncSession,
        user_id: uuid.UUID,
        password_hash: str,
    ) -> None:
        """Replace a user's password hash.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            password_hash: New bcrypt hash.
        """
        user = await db.get(User, user_id)
        if user is None:
            return
        user.password_hash = password_hash
        await db.flush()

    @staticmethod
    async def mark_email_verified(
        db: AsyncSession,
        user_id: uuid.UUID,
        verified_at: datetime,
    ) -> None:
        """Record that the user's email address has been verified.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            verified_at: Verification timestamp.
        """
        user = await db.get(User, user_id)
        if user is None:
            return
        user.email_verified_at = verified_at
        await db.flush()

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user_id: uuid.UUID,
        **fields: str | None,
    ) -> User | None:
        """Update profile fields.

        Only fields in _PROFILE_FIELDS are allowed. A changed email is
        normalized, must stay unique, and resets email verification.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **fields: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
            ConflictError: EMAIL_ALREADY_EXISTS if the new email is taken.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        new_email = fields.pop("email", None)
        if new_email is not None:
            new_email = normalize_email(new_email)
            if new_email != user.email:
                user.email = new_email
                user.email_verified_at = None

        for field, value in fields.items():
            setattr(user, field, value)

        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError(
                code=_EMAIL_EXISTS_CODE,
                message=_EMAIL_EXISTS_MSG,
            ) from exc
        await db.refresh(user)
        return user
