"""Epoch-millisecond helpers used on the wire."""

from datetime import UTC, datetime


def now_ms() -> int:
    """Return the current UTC time in epoch milliseconds."""
    return to_ms(datetime.now(tz=UTC))


def to_ms(moment: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(moment.timestamp() * 1000)


def from_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=UTC)
