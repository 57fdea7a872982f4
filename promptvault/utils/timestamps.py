"""
Timestamp helpers.

Timestamps are persisted as ISO-8601 UTC strings with microsecond precision so
that string order in the database equals chronological order.
"""

from datetime import datetime, UTC
from typing import Optional, Union

TimestampLike = Union[str, datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Parse an ISO-8601 string (``Z`` suffix accepted) or datetime.

    Naive values are taken as UTC.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def to_storage(value: Optional[TimestampLike] = None) -> str:
    """Canonical storage form of ``value`` (now when omitted)."""
    moment = utc_now() if value is None else parse_timestamp(value)
    return moment.isoformat(timespec="microseconds")


def now_iso() -> str:
    return to_storage()
