"""
Canonical comparison form of cell values.

``normalize_value`` is total: it never raises, and two values that would be
stored identically normalize to the same string. ``"100.00"``, ``"100"`` and
``100`` are equal in a numeric column; ``None`` and ``""`` are equal in any
column.
"""

from datetime import date, datetime
from decimal import Context, Decimal, InvalidOperation
from typing import Any

from .dates import format_date, recover_datetime
from .sanitizer import recover_boolean, recover_number
from .types import SqlTypeFamily, classify

TRUE_TOKENS = frozenset({"true", "t", "1", "yes", "y"})
FALSE_TOKENS = frozenset({"false", "f", "0", "no", "n"})

# Beyond this magnitude numbers are compared as plain text
MAX_EXPONENT = 1000

_CONTEXT = Context(prec=100)


def canonical_number(value: Any) -> str | None:
    """
    Render a number or numeric string in shortest plain decimal form.

    Thousands separators are ignored. Returns None when ``value`` is not a
    finite number.

    Examples:
        >>> canonical_number("1,234.50")
        '1234.5'
        >>> canonical_number(100.0)
        '100'
    """
    if isinstance(value, bool):
        value = int(value)

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    else:
        cleaned = str(value).replace(",", "").strip()
        if not cleaned:
            return None
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            return None

    if not number.is_finite() or abs(number.adjusted()) > MAX_EXPONENT:
        return None
    if number.is_zero():
        return "0"
    return format(number.normalize(_CONTEXT), "f")


def _normalize_temporal(value: Any, family: SqlTypeFamily) -> str:
    date_only = family is SqlTypeFamily.DATE

    if isinstance(value, date):
        return format_date(value, date_only)

    text = str(value).strip()
    if not text:
        return ""

    parsed = recover_datetime(text)
    if parsed is None:
        return text
    return format_date(parsed, date_only)


def _normalize_boolean(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"

    text = str(value).strip()
    token = text.lower()
    if token in TRUE_TOKENS:
        return "true"
    if token in FALSE_TOKENS:
        return "false"
    recovered = recover_boolean(text)
    return recovered if recovered in ("true", "false") else text


def normalize_value(value: Any, sql_type: str | None) -> str:
    """
    Normalize one cell value for comparison against a column of ``sql_type``.

    Args:
        value: Raw value (None, str, int, float, Decimal, bool, date, datetime)
        sql_type: Declared SQL type of the target column

    Returns:
        Canonical string; ``""`` for null and blank values
    """
    if value is None:
        return ""

    family = classify(sql_type)

    if family.is_numeric:
        rendered = canonical_number(value)
        if rendered is None:
            # Compare in the repaired form the writer stores
            rendered = canonical_number(recover_number(str(value)))
        return rendered if rendered is not None else str(value).strip()

    if family.is_temporal:
        return _normalize_temporal(value, family)

    if family is SqlTypeFamily.BOOLEAN:
        return _normalize_boolean(value)

    if isinstance(value, date):
        return format_date(value, date_only=not isinstance(value, datetime))

    return str(value).strip()
