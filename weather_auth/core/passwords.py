"""Password hashing and validation.

bcrypt with a fixed cost factor from settings. Hashing is CPU bound, so
async callers run these helpers through ``run_in_threadpool``.

Pipeline:
- validate_password: length rules (sync, no hashing)
- hash_password / verify_password: bcrypt primitives
- dummy_hash / burn_password_check: timing-safe no-op for unknown users
"""

from functools import cache

import bcrypt

from weather_auth.core.config import settings
from weather_auth.core.errors import ValidationError

MIN_PASSWORD_LENGTH = 6

# bcrypt only reads the first 72 bytes; longer input is rejected by the library
MAX_PASSWORD_BYTES = 72

# Throwaway input for the dummy hash; never a real password
_DUMMY_PASSWORD = b"weather-app-dummy-password"  # nosec B105


def validate_password(password: str) -> None:
    """Validate password length requirements.

    Args:
        password: Plain-text password to validate.

    Raises:
        ValidationError: If the password is too short or too long.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Args:
        password: Plain-text password.

    Returns:
        bcrypt hash as a string.
    """
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash.

    Args:
        password: Plain-text password.
        password_hash: Stored bcrypt hash.

    Returns:
        True on match. False on mismatch, malformed hash, or oversize input.
    """
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


@cache
def dummy_hash(rounds: int) -> bytes:
    """Return a bcrypt hash at the given cost, computed once per cost.

    Used for timing-safe comparison on user-not-found. The cost must match
    hash_password so both login paths spend the same time.
    """
    return bcrypt.hashpw(_DUMMY_PASSWORD, bcrypt.gensalt(rounds=rounds))


def burn_password_check(password: str) -> None:
    """Spend the same bcrypt work as a real check, then discard the result.

    Called when the user does not exist or has no password so the login
    response time does not reveal which case occurred.
    """
    bcrypt.checkpw(
        password.encode()[:MAX_PASSWORD_BYTES], dummy_hash(settings.bcrypt_rounds)
    )
