"""SQLAlchemy ORM models.

All models are exported from this module for convenient imports:
    from weather_auth.models import User

- base.py: Base, TimestampMixin
- user.py: User
"""

from weather_auth.models.base import Base, TimestampMixin
from weather_auth.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
]
