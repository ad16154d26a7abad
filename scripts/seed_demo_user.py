"""Seed a verified demo account for local development.

Usage:
    python -m scripts.seed_demo_user

Deletes any existing demo user first, so the script can be re-run to reset
the demo password.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from weather_auth.core.passwords import hash_password
from weather_auth.models.user import User
from weather_auth.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo123"  # nosec B105 - local development account


async def seed_demo_user(session: AsyncSession) -> User:
    """Replace the demo user with a fresh, verified account.

    Args:
        session: Async database session. The caller commits.

    Returns:
        The newly created demo User.
    """
    await session.execute(delete(User).where(User.email == DEMO_EMAIL))
    user = await UserRepository.create(
        session,
        email=DEMO_EMAIL,
        first_name="Demo",
        last_name="User",
        password_hash=hash_password(DEMO_PASSWORD),
        email_verified_at=datetime.now(UTC),
    )
    logger.info("Demo user created: %s (id=%s)", DEMO_EMAIL, user.id)
    return user


async def main() -> None:
    """CLI entry point: seed against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from weather_auth.core.config import settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        await seed_demo_user(session)
        await session.commit()

    await engine.dispose()

    logger.info("Log in with %s / %s", DEMO_EMAIL, DEMO_PASSWORD)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
