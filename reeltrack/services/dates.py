"""Date helpers — catalog dates are plain ``YYYY-MM-DD`` strings in local time."""
from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional


def parse_date(value) -> Optional[date]:
    """Parse a catalog date (``YYYY-MM-DD`` or an ISO timestamp) into a :class:`date`.

    Returns ``None`` for empty or unparseable values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text.split("T")[0])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def months_before(day: date, months: int) -> date:
    """Return *day* shifted back by *months*, clamped to the end of the month."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def days_until(target: date, today: date) -> int:
    return (target - today).days
