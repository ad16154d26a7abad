"""API error classes.

Each subclass fixes an HTTP status and a machine-readable code; the handlers
in main.py render them as the standard error envelope.

Authentication failures are deliberately non-specific: the message never
says whether the email exists, the password was wrong, or a token expired.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "CONFLICT").
        message: Human-readable error message, safe to show to clients.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for missing or malformed input the user can correct.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid session accompanies a request to a protected resource.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class InvalidCredentialsError(APIError):
    """Login failed (401).

    Raised for unknown email, passwordless account, and wrong password alike
    so responses cannot be used to enumerate registered emails.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message="Invalid email or password",
            status_code=401,
        )


class InvalidOrExpiredTokenError(APIError):
    """Password reset token rejected (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OR_EXPIRED_TOKEN",
            message="Invalid or expired token",
            status_code=400,
        )


class InvalidTokenError(APIError):
    """Email verification token rejected (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_TOKEN",
            message="Invalid token",
            status_code=400,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )

