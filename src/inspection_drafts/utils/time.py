"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def as_utc(value: datetime) -> datetime:
    """Treat a timestamp without an offset as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, accepting the ``Z`` suffix browsers emit."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return as_utc(parsed)


def max_iso(first: str | None, second: str | None) -> str | None:
    """Return whichever timestamp is later, keeping its original text."""
    first_dt = parse_iso(first)
    second_dt = parse_iso(second)
    if first_dt is None:
        return second
    if second_dt is None:
        return first
    return second if second_dt > first_dt else first
