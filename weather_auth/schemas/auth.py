"""Request and response schemas for the auth and profile endpoints.

Request models accept both snake_case and the camelCase keys the web client
sends (``firstName``, ``newPassword``). Response models never carry the
password hash.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from weather_auth.models.user import User

# =============================================================================
# Requests
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register.

    Fields are optional at the schema level so a missing field is reported
    as the "All fields are required" validation error by AuthService.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(
        None,
        max_length=100,
        validation_alias=AliasChoices("first_name", "firstName"),
    )
    last_name: str | None = Field(
        None,
        max_length=100,
        validation_alias=AliasChoices("last_name", "lastName"),
    )
    email: EmailStr | None = None
    password: str | None = Field(None, max_length=128)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class EmailRequest(BaseModel):
    """Request body for POST /auth/request-reset and /auth/resend-verification."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(min_length=1, max_length=2048)
    password: str = Field(
        max_length=128,
        validation_alias=AliasChoices("password", "new_password", "newPassword"),
    )


class VerifyEmailRequest(BaseModel):
    """Request body for POST /auth/verify."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(min_length=1, max_length=2048)


class UpdateProfileRequest(BaseModel):
    """Request body for PUT /user/profile. Omitted fields are unchanged."""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(
        None,
        max_length=100,
        validation_alias=AliasChoices("first_name", "firstName"),
    )
    last_name: str | None = Field(
        None,
        max_length=100,
        validation_alias=AliasChoices("last_name", "lastName"),
    )
    email: EmailStr | None = None


# =============================================================================
# Responses
# =============================================================================


class UserPayload(BaseModel):
    """Public view of a User.

    Attributes:
        id: User UUID as a string.
        email: Login email.
        first_name: Display first name.
        last_name: Display last name.
        email_verified: True once the email has been verified.
        email_verified_at: Verification timestamp, if any.
        has_password: False for accounts that never set a password.
    """

    id: str
    email: str
    first_name: str | None
    last_name: str | None
    email_verified: bool
    email_verified_at: datetime | None
    has_password: bool

    @classmethod
    def from_user(cls, user: User) -> "UserPayload":
        """Build the payload from an ORM User."""
        return cls(
            id=str(user.id),
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            email_verified=user.is_email_verified,
            email_verified_at=user.email_verified_at,
            has_password=user.password_hash is not None,
        )


class RegisterPayload(BaseModel):
    """Response data for POST /auth/register."""

    message: str
    user: UserPayload


class CurrentUserPayload(BaseModel):
    """Response data for GET /auth/me. ``user`` is None without a session."""

    user: UserPayload | None
