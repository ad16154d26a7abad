"""User model - registered identity.

One row per account. Email is the login key and is stored lowercased so the
unique constraint also enforces case-insensitive uniqueness.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from weather_auth.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: UUID primary key, assigned at creation.
        email: Unique, lowercased email address.
        password_hash: bcrypt hash. NULL for accounts that never set a
            password; such accounts cannot use password login.
        first_name: Optional display first name.
        last_name: Optional display last name.
        email_verified_at: Timestamp when email was verified. NULL = unverified.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    first_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    last_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    email_verified_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    @property
    def is_email_verified(self) -> bool:
        """Check whether the email address has been verified."""
        return self.email_verified_at is not None
