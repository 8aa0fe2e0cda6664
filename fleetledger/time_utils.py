"""Mini README: Timestamp helpers shared by stored documents.

Documents carry ISO-8601 UTC strings so they serialise unchanged through
the store and the JSON interface. Tour start dates arrive as ISO dates or
datetimes and are parsed here for ordering.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with offset."""

    return datetime.now(timezone.utc).isoformat()


def parse_start(value: Optional[Union[str, date, datetime]]) -> datetime:
    """Parse a tour start into an aware UTC datetime.

    Naive values are taken as UTC. Dates become midnight. ``None`` raises
    ``ValueError`` since an unscheduled tour cannot be ordered.
    """

    if value is None:
        raise ValueError("Tour start date is required")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported start date value: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
