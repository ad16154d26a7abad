import uuid
from collections.abc import AsyncGenerator, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from weather_auth.core.config import settings
from weather_auth.core.passwords import hash_password
from weather_auth.models import Base, User

# In-memory SQLite shared across sessions through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Test user ID (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "test@example.com"
TEST_USER_PASSWORD = "correct-horse"  # nosec B105

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

# bcrypt cost for tests (production uses settings.bcrypt_rounds >= 10)
_BCRYPT_ROUNDS = 4


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def auth_settings() -> Iterator[None]:
    """Pin auth settings to test values and restore them afterwards.

    - Fixed signing secret so tests can mint their own tokens
    - Cheap bcrypt cost
    - Non-secure cookie so the http:// test client sends it back
    - No Resend key: email transport runs in log-only mode

    Yields:
        None (autouse fixture).
    """
    original = (
        settings.auth_secret,
        settings.bcrypt_rounds,
        settings.session_cookie_secure,
        settings.resend_api_key,
    )
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.bcrypt_rounds = _BCRYPT_ROUNDS
    settings.session_cookie_secure = False
    settings.resend_api_key = SecretStr("")

    yield

    (
        settings.auth_secret,
        settings.bcrypt_rounds,
        settings.session_cookie_secure,
        settings.resend_api_key,
    ) = original


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests to avoid
    flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from weather_auth.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a fresh in-memory database with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_user(session_factory) -> User:
    """Create a verified user with a known password.

    Returns:
        User model instance (detached; attributes loaded).
    """
    async with session_factory() as session:
        user = User(
            id=TEST_USER_ID,
            email=TEST_USER_EMAIL,
            first_name="Test",
            last_name="User",
            password_hash=hash_password(TEST_USER_PASSWORD),
            email_verified_at=datetime.now(UTC),
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


# =============================================================================
# Mailer
# =============================================================================


@dataclass(frozen=True)
class SentEmail:
    """One email handed to the mailer."""

    kind: str
    to_email: str
    token: str
    first_name: str | None


class RecordingMailer:
    """Mailer fake that records every send instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []

    def send_verification_email(
        self, *, to_email: str, token: str, first_name: str | None
    ) -> None:
        self.sent.append(SentEmail("verify", to_email, token, first_name))

    def send_password_reset_email(
        self, *, to_email: str, token: str, first_name: str | None
    ) -> None:
        self.sent.append(SentEmail("reset", to_email, token, first_name))

    def of_kind(self, kind: str) -> list[SentEmail]:
        return [email for email in self.sent if email.kind == kind]


@pytest.fixture
def mailer() -> RecordingMailer:
    """Recording mailer shared by the service and the API client."""
    return RecordingMailer()


# =============================================================================
# API client
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory,
    mailer: RecordingMailer,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database and recording mailer.

    Sets up:
    - get_db override using the test engine
    - get_mailer override returning the recording mailer
    - app.state.session_factory so RouteGuardMiddleware uses the test engine

    Yields:
        AsyncClient without a session cookie. Log in through
        /api/v1/auth/login to get one.
    """
    from weather_auth.api.deps import get_mailer
    from weather_auth.core.database import get_db
    from weather_auth.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    original_factory = app.state.session_factory
    app.state.session_factory = session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.session_factory = original_factory
    app.dependency_overrides.clear()
