"""Natural-language date, time-of-day and duration parsing.

All parsers are pure and never raise. Dates resolve relative to an explicit
reference datetime so results are reproducible in tests.
"""

import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple, Union


class Unparseable(Enum):
    """Sentinel returned when a date string cannot be understood."""

    UNPARSEABLE = "unparseable"

    def __bool__(self) -> bool:
        return False


UNPARSEABLE = Unparseable.UNPARSEABLE

DateResult = Union[datetime, Unparseable]

DATE_FORMAT_HELP = (
    "Accepted date formats: today, tomorrow, yesterday, in N days, in N weeks, "
    "next week, next <weekday>, <weekday>, YYYY-MM-DD, MM/DD/YYYY, or 'Month D, YYYY'."
)

TIME_FORMAT_HELP = "Accepted time formats: HH:MM (24h), H:MM am/pm, Ham/Hpm, noon, midnight."

WEEKDAYS = {
    "monday": 0,
    "mon": 0,
    "tuesday": 1,
    "tue": 1,
    "tues": 1,
    "wednesday": 2,
    "wed": 2,
    "thursday": 3,
    "thu": 3,
    "thur": 3,
    "thurs": 3,
    "friday": 4,
    "fri": 4,
    "saturday": 5,
    "sat": 5,
    "sunday": 6,
    "sun": 6,
}

_NUMBER_WORDS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

_RELATIVE_RE = re.compile(r"^in\s+(\d+|[a-z]+)\s+(day|days|week|weeks)$")
_FROM_NOW_RE = re.compile(r"^(\d+|[a-z]+)\s+(day|days|week|weeks)\s+from\s+(now|today)$")
_NEXT_WEEKDAY_RE = re.compile(r"^next\s+([a-z]+)$")
_THIS_WEEKDAY_RE = re.compile(r"^(?:this\s+|on\s+)?([a-z]+)$")
_ISO_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_ORDINAL_RE = re.compile(r"(\d+)(st|nd|rd|th)\b")

_FALLBACK_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%Y/%m/%d",
)

# Formats without a year take the reference year
_YEARLESS_FORMATS = ("%B %d", "%b %d", "%d %B", "%d %b")


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _to_int(token: str) -> Optional[int]:
    if token.isdigit():
        return int(token)
    return _NUMBER_WORDS.get(token)


def _days_until(weekday: int, base: datetime, allow_today: bool) -> int:
    diff = (weekday - base.weekday()) % 7
    if diff == 0 and not allow_today:
        diff = 7
    return diff


def _shift(base: datetime, days: int) -> DateResult:
    try:
        return base + timedelta(days=days)
    except (OverflowError, ValueError):
        return UNPARSEABLE


def _build(base: datetime, year: int, month: int, day: int) -> DateResult:
    try:
        return base.replace(year=year, month=month, day=day)
    except ValueError:
        return UNPARSEABLE


def parse_natural_date(raw: Optional[str], reference: Optional[datetime] = None) -> DateResult:
    """Parse a natural-language date into an absolute datetime at midnight.

    Args:
        raw: Free text such as ``"tomorrow"``, ``"in 3 days"``, ``"next friday"``
            or ``"2025-12-24"``
        reference: The moment "today" refers to (defaults to now). Its
            timezone, if any, is kept on the result.

    Returns:
        The resolved datetime, or ``UNPARSEABLE`` when the text is not understood
    """
    if raw is None:
        return UNPARSEABLE
    text = " ".join(str(raw).strip().lower().split())
    if not text:
        return UNPARSEABLE

    base = _midnight(reference or datetime.now())

    if text in ("today", "tonight", "now"):
        return base
    if text == "tomorrow":
        return base + timedelta(days=1)
    if text == "yesterday":
        return base - timedelta(days=1)
    if text in ("day after tomorrow", "the day after tomorrow"):
        return base + timedelta(days=2)
    if text == "next week":
        return base + timedelta(days=7)

    match = _RELATIVE_RE.match(text) or _FROM_NOW_RE.match(text)
    if match:
        amount = _to_int(match.group(1))
        if amount is None:
            return UNPARSEABLE
        unit_days = 7 if match.group(2).startswith("week") else 1
        return _shift(base, amount * unit_days)

    match = _NEXT_WEEKDAY_RE.match(text)
    if match and match.group(1) in WEEKDAYS:
        return base + timedelta(days=_days_until(WEEKDAYS[match.group(1)], base, allow_today=False))

    match = _THIS_WEEKDAY_RE.match(text)
    if match and match.group(1) in WEEKDAYS:
        return base + timedelta(days=_days_until(WEEKDAYS[match.group(1)], base, allow_today=True))

    match = _ISO_PREFIX_RE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _build(base, year, month, day)

    return _parse_fallback(text, base)


def _parse_fallback(text: str, base: datetime) -> DateResult:
    cleaned = _ORDINAL_RE.sub(r"\1", text)
    for fmt in _FALLBACK_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return _build(base, parsed.year, parsed.month, parsed.day)

    for fmt in _YEARLESS_FORMATS:
        try:
            # Parse with a leap year so "feb 29" is accepted before the year is applied
            parsed = datetime.strptime(f"{cleaned} 2000", f"{fmt} %Y")
        except ValueError:
            continue
        return _build(base, base.year, parsed.month, parsed.day)

    return UNPARSEABLE


_TIME_24H_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)$")


def parse_time_of_day(raw: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a time of day into ``(hour, minute)``.

    Accepts ``HH:MM`` (24h), ``H:MM am/pm``, ``Ham``/``Hpm``, ``noon`` and
    ``midnight``. Returns None for anything else.
    """
    if raw is None:
        return None
    text = str(raw).strip().lower()
    if text == "noon":
        return (12, 0)
    if text == "midnight":
        return (0, 0)

    match = _TIME_24H_RE.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return (hour, minute)
        return None

    match = _TIME_12H_RE.match(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        meridiem = match.group(3).replace(".", "")
        if not (1 <= hour <= 12 and 0 <= minute <= 59):
            return None
        if meridiem == "am":
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
        return (hour, minute)

    return None


def combine_date_time(date: datetime, time_of_day: Tuple[int, int]) -> datetime:
    """Set hour and minute on ``date``, leaving every other field unchanged."""
    hour, minute = time_of_day
    return date.replace(hour=hour, minute=minute)


_DURATION_PART_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(hours|hour|hrs|hr|h|minutes|minute|mins|min|m)(?![a-z])"
)


def _minutes(value: float) -> Optional[timedelta]:
    try:
        duration = timedelta(minutes=value)
    except (OverflowError, ValueError):
        return None
    return duration if duration > timedelta() else None


def parse_duration(raw: Optional[str]) -> Optional[timedelta]:
    """Parse a duration such as ``"30m"``, ``"1.5 hours"`` or ``"1h30m"``.

    A bare number is read as minutes. Returns None when nothing matches.
    """
    if raw is None:
        return None
    text = str(raw).strip().lower()
    if not text:
        return None
    if text in ("half an hour", "half hour"):
        return timedelta(minutes=30)
    if text in ("an hour", "one hour"):
        return timedelta(hours=1)
    if re.fullmatch(r"\d+(\.\d+)?", text):
        return _minutes(float(text))

    parts = _DURATION_PART_RE.findall(text)
    if not parts:
        return None
    # Every character must belong to a recognised part
    leftover = _DURATION_PART_RE.sub("", text).replace("and", "").strip(" ,")
    if leftover:
        return None

    minutes = 0.0
    for amount, unit in parts:
        value = float(amount)
        minutes += value * 60 if unit.startswith("h") else value
    return _minutes(minutes)
