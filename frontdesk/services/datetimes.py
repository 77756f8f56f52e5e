"""Parsing of the date and time strings sent by booking forms."""
import datetime
import re

from django.utils.dateparse import parse_date, parse_datetime

from frontdesk.exceptions import ValidationError

_TIME_RE = re.compile(r'^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])?\s*$')


def normalize_date(value) -> datetime.date:
    """Accept ``YYYY-MM-DD`` or an ISO datetime and return the calendar date."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value or '').strip()
    parsed = None
    try:
        parsed = parse_date(text)
        if parsed is None:
            dt = parse_datetime(text.replace('Z', '+00:00'))
            parsed = dt.date() if dt else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid date: {value!r}")
    return parsed


def normalize_time(value) -> datetime.time:
    """Return a 24-hour time from ``HH:MM[:SS]`` or ``h:MM[:SS] AM|PM``.

    12 AM is hour 0, 12 PM stays 12, any other PM hour gains 12.
    """
    if isinstance(value, datetime.time):
        return value.replace(microsecond=0, tzinfo=None)
    m = _TIME_RE.match(str(value or ''))
    if not m:
        raise ValidationError(f"Invalid time: {value!r}")
    hours, minutes = int(m.group(1)), int(m.group(2))
    seconds = int(m.group(3) or 0)
    marker = (m.group(4) or '').upper()
    if marker:
        if not 1 <= hours <= 12:
            raise ValidationError(f"Invalid time: {value!r}")
        if marker == 'PM' and hours < 12:
            hours += 12
        elif marker == 'AM' and hours == 12:
            hours = 0
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValidationError(f"Invalid time: {value!r}")
    return datetime.time(hours, minutes, seconds)


def format_time(value: datetime.time | None) -> str | None:
    return value.strftime('%H:%M:%S') if value else None
