import os
import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

LOCAL_TIME_ZONE = os.getenv("LOCAL_TIME_ZONE", "America/New_York")

_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def today() -> date:
    """Current calendar date in the yard's time zone, not the server's."""
    return datetime.now(ZoneInfo(LOCAL_TIME_ZONE)).date()


def parse_date(value) -> Optional[date]:
    """
    Turn a stored or typed delivery date into a plain calendar date.

    Accepts ``date``/``datetime`` objects and strings that start with
    ``YYYY-MM-DD`` (``2025-03-10``, ``2025-03-10T04:00:00.000Z``,
    ``2025-03-10 12:00:00``). The time of day and any UTC offset are
    ignored: a delivery date is the calendar day it was written as.
    Returns ``None`` for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    m = _DATE_PREFIX.match(value.strip())
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def normalize_date(value) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None
