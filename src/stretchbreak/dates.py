"""Calendar-date helpers.

Every date the planner stores or compares is a ``YYYY-MM-DD`` string at the
edges and a :class:`datetime.date` inside.  Values read back from storage are
run through :func:`normalize_date` so that a single bad record never breaks an
aggregate computation.
"""

from __future__ import annotations

import datetime
import logging
import re
from collections.abc import Iterator

log = logging.getLogger(__name__)

CALENDAR_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = datetime.date | str

ONE_DAY = datetime.timedelta(days=1)


def parse_date(value: DateLike) -> datetime.date:
    """Return *value* as a :class:`datetime.date`.

    Accepts dates, datetimes and ISO 8601 strings (``2025-07-04``,
    ``20250704``, ``2025-07-04T09:00:00``).  Raises ``ValueError`` otherwise.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.datetime.fromisoformat(text).date()
    except ValueError:
        msg = f"Invalid calendar date {value!r}. Use YYYY-MM-DD."
        raise ValueError(msg) from None


def format_date(value: DateLike) -> str:
    """Canonical ``YYYY-MM-DD`` form of *value*."""
    return parse_date(value).isoformat()


def normalize_date(value: object) -> str | None:
    """Normalize a stored date to ``YYYY-MM-DD``, or ``None`` if unusable."""
    if isinstance(value, datetime.date):
        return format_date(value)
    if not isinstance(value, str) or not value.strip():
        log.warning("Dropping empty or non-string date %r", value)
        return None

    text = value.strip()
    try:
        day = parse_date(text)
    except ValueError:
        log.warning("Dropping unparseable date %r", value)
        return None

    if not CALENDAR_DATE_RE.match(text):
        log.debug("Normalized date %r to %s", value, day.isoformat())
    return day.isoformat()


def is_weekend(day: DateLike) -> bool:
    return parse_date(day).weekday() >= 5


def is_same_date(a: DateLike, b: DateLike) -> bool:
    return parse_date(a) == parse_date(b)


def date_range(start: datetime.date, end: datetime.date) -> Iterator[datetime.date]:
    """Yield every day from *start* to *end* inclusive."""
    day = start
    while day <= end:
        yield day
        day += ONE_DAY


def weekdays_between(start: datetime.date, end: datetime.date) -> list[datetime.date]:
    """Mon-Fri days from *start* to *end* inclusive."""
    return [d for d in date_range(start, end) if d.weekday() < 5]
