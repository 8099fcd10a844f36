"""
Date utilities shared by storage backends and feed refresh.
"""
import time
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC value.

    SQLite hands back naive datetimes even for timezone-aware columns;
    those are taken to already be in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_struct_time(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert the UTC struct_time produced by feedparser into a datetime"""
    if not value:
        return None
    return datetime(*value[:6], tzinfo=timezone.utc)


def from_epoch_millis(value) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
