from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(expires_at) -> bool:
    return expires_at is None or ensure_aware(expires_at) <= utcnow()


def parse_day(value: str) -> date:
    """
    Parse a calendar day from ``YYYY-MM-DD``, ignoring any time part
    (``2024-03-04T19:30:00Z`` is the 4th of March).
    Raises ValueError on anything else.
    """
    value = (value or "").strip()
    if len(value) < 10:
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(value[:10])
