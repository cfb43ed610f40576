from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite 등 tz 정보를 잃는 드라이버에서 읽은 값은 UTC로 간주한다."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_hours(value: datetime | None, hours: int | None) -> datetime | None:
    if value is None or hours is None:
        return None
    return as_utc(value) + timedelta(hours=hours)
