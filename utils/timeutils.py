"""
Timestamp helpers.

All persisted timestamps are ISO-8601 strings in UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Serialize a datetime, treating naive values as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    Args:
        value: ISO string (a trailing 'Z' is accepted)

    Returns:
        Aware datetime, or None if the value is missing or unparseable
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
