"""Column Types — timezone-aware datetimes on every backend.

Invariants:
    - Values bound to the database are converted to UTC
    - Values loaded from the database are always timezone-aware UTC

Design Decisions:
    - SQLite drops tzinfo on round-trip; PostgreSQL keeps it. UTCDateTime makes
      both look like PostgreSQL so expiry comparisons never mix naive and aware
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
