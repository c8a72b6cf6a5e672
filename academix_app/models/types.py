"""Column types shared by the models."""

from __future__ import annotations

from sqlalchemy.types import DateTime, TypeDecorator

from ..utils.time_utils import ensure_utc


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime that survives backends storing naive values (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)
