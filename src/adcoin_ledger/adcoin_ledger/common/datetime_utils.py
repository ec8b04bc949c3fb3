from __future__ import annotations

from datetime import date, datetime, time, timezone


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_utc() -> datetime:
    """Current UTC time as a naive datetime (the DB stores UTC without tz).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
