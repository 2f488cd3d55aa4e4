# logistics_backend/shared/utils/dates.py
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_naive_utc(value).isoformat()
    return str(value)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return as_naive_utc(datetime.fromisoformat(value))
