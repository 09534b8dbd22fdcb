"""
Database utilities and configuration.
"""

from shared.database.base import Base, TimestampMixin, utc_now

__all__ = [
    "Base",
    "TimestampMixin",
    "utc_now",
]
