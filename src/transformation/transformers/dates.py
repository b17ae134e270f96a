"""
Parsing and rendering of spreadsheet dates.

Spreadsheet exports mix ISO strings, slash and dot separated dates, two
digit years and times cut off mid-way (``"24/10/31 05:"``). Everything is
handled in local wall-clock terms: timezone-aware inputs are converted to
local time and rendered without an offset.
"""

import re
from datetime import date, datetime

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Tried after datetime.fromisoformat
_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y.%m.%d",
    "%Y.%m.%d %H:%M:%S",
    "%Y.%m.%d %H:%M",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y-%m-%d %H:%M",
    "%Y年%m月%d日",
)

_DATE_SEPARATORS = re.compile(r"[/.]")
_DATE_LIKE = re.compile(r"[/.\-]")

# Two-digit years below this pivot land in the 2000s
TWO_DIGIT_YEAR_PIVOT = 50


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    try:
        return value.astimezone().replace(tzinfo=None)
    except (OverflowError, OSError):
        # Out of range for the platform clock: keep the wall-clock reading
        return value.replace(tzinfo=None)


def format_date(value: date, date_only: bool) -> str:
    """Render a date or datetime as ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM:SS``."""
    if isinstance(value, datetime):
        value = to_local_naive(value)
        return value.strftime(DATE_FORMAT if date_only else DATETIME_FORMAT)
    if date_only:
        return value.strftime(DATE_FORMAT)
    return datetime(value.year, value.month, value.day).strftime(DATETIME_FORMAT)


def parse_datetime(text: str) -> datetime | None:
    """
    Parse a complete date or date-time string.

    Returns:
        A naive local datetime, or None when no known format matches
    """
    text = text.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None

    if parsed is None:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is not None:
        parsed = to_local_naive(parsed)
    return parsed


def expand_year(year: int) -> int:
    """Expand a two-digit year: ``24 -> 2024``, ``87 -> 1987``."""
    if year >= 100:
        return year
    return year + (2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900)


def decompose_date(text: str) -> datetime | None:
    """
    Read ``y/m/d`` or ``y.m.d`` by position, expanding two-digit years.

    Returns:
        Midnight of that day, or None if the parts do not form a real date
    """
    parts = _DATE_SEPARATORS.split(text.strip())
    if len(parts) != 3 or not all(part.strip().isdecimal() for part in parts):
        return None

    try:
        year, month, day = (int(part) for part in parts)
        return datetime(expand_year(year), month, day)
    except (ValueError, OverflowError):
        return None


def recover_datetime(text: str) -> datetime | None:
    """
    Parse a possibly damaged date string.

    Tries, in order: a direct parse; the part before the first space when it
    looks like a date (drops truncated times); positional decomposition of
    ``/`` or ``.`` separated dates.

    Examples:
        >>> recover_datetime("24/10/31 05:")
        datetime.datetime(2024, 10, 31, 0, 0)
    """
    text = text.strip()
    parsed = parse_datetime(text)
    if parsed is not None:
        return parsed

    candidate = text
    if " " in text:
        head = text.split(" ", 1)[0]
        if _DATE_LIKE.search(head):
            candidate = head
            parsed = parse_datetime(candidate)
            if parsed is not None:
                return parsed

    if _DATE_SEPARATORS.search(candidate):
        return decompose_date(candidate)
    return None
