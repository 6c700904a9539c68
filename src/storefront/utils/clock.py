from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so they compare against aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def within_window(now: datetime, start: datetime | None, end: datetime | None) -> bool:
    """True when `now` lies in the closed window [start, end]; open bounds are unset."""
    now = as_utc(now)
    start, end = as_utc(start), as_utc(end)
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True
