"""Shared utilities used across the reservation core."""

import re
from datetime import date, datetime
from typing import Union

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def normalize_date(value: Union[str, date, datetime]) -> str:
    """Normalize a date-like value to a YYYY-MM-DD string.

    Examples:
        >>> normalize_date("2025-03-18")
        '2025-03-18'
        >>> normalize_date(datetime(2025, 3, 18, 23, 30))
        '2025-03-18'
        >>> normalize_date(" 2025-03-18T08:00:00 ")
        '2025-03-18'
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        raise ValueError(f"Not a date: {value!r}") from None


def is_valid_time_slot(value: str) -> bool:
    """Check a slot start is a zero-padded 24h HH:MM string.

    Examples:
        >>> is_valid_time_slot("06:15")
        True
        >>> is_valid_time_slot("6:15")
        False
    """
    return bool(_TIME_RE.match(value or ""))
