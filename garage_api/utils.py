"""
Small helpers shared across the package.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a datetime read back from the database to aware UTC.

    SQLite hands timestamps back without an offset even when they were
    stored as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_identifier(prefix: str, number: int, width: int = 5) -> str:
    """Human readable identifier, e.g. ``format_identifier("JOB", 7) == "JOB00007"``."""
    return f"{prefix}{number:0{width}d}"
