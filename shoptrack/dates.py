"""
Date helpers shared by the DAOs and reports.

Timestamps are stored as integer epoch milliseconds.  Days ("YYYY-MM-DD")
and months ("YYYY-MM") are always interpreted in the device's local time
zone, which is what the shop owner sees on the receipt.
"""

from datetime import date, datetime, timedelta

from shoptrack.errors import InputError

DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"


def to_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def from_millis(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000.0)


def today_key() -> str:
    return date.today().strftime(DATE_FORMAT)


def current_month_key() -> str:
    return date.today().strftime(MONTH_FORMAT)


def date_key(dt: datetime) -> str:
    return dt.strftime(DATE_FORMAT)


def parse_date_key(key: str) -> date:
    try:
        return datetime.strptime(key, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InputError(f"Invalid date {key!r}, expected YYYY-MM-DD")


def parse_month_key(key: str) -> date:
    try:
        return datetime.strptime(key, MONTH_FORMAT).date()
    except (TypeError, ValueError):
        raise InputError(f"Invalid month {key!r}, expected YYYY-MM")


def day_bounds(key: str):
    """Return ``(start_ms, end_ms)`` of the local day ``key``, end exclusive."""
    day = parse_date_key(key)
    start = datetime(day.year, day.month, day.day)
    return to_millis(start), to_millis(start + timedelta(days=1))


def month_bounds(key: str):
    """Return ``(start_ms, end_ms)`` of the local month ``key``, end exclusive."""
    first = parse_month_key(key)
    start = datetime(first.year, first.month, 1)
    if first.month == 12:
        end = datetime(first.year + 1, 1, 1)
    else:
        end = datetime(first.year, first.month + 1, 1)
    return to_millis(start), to_millis(end)


def shift_month(key: str, months: int) -> str:
    """Return the month key ``months`` away from ``key`` (may be negative)."""
    first = parse_month_key(key)
    index = first.year * 12 + (first.month - 1) + months
    return f"{index // 12:04d}-{index % 12 + 1:02d}"
