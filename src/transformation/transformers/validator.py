"""
Syntactic checks of values against their target column type.

Nullability is not enforced here: ``None`` and ``""`` always pass.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from .dates import parse_datetime
from .types import SqlTypeFamily, classify

INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0", "t", "f"})


class InvalidValueError(ValueError):
    """A value that cannot be written to its column, even after repair."""

    def __init__(self, message: str, value: Any, sql_type: str | None):
        super().__init__(message)
        self.message = message
        self.value = value
        self.sql_type = sql_type


def _is_number(text: str) -> bool:
    try:
        return Decimal(text).is_finite()
    except InvalidOperation:
        return False


def validate_value(value: Any, sql_type: str | None) -> str | None:
    """
    Check ``value`` against ``sql_type``.

    Args:
        value: Raw or sanitized value
        sql_type: Declared SQL type of the column

    Returns:
        None when the value is acceptable, otherwise an error message
    """
    if value is None or value == "":
        return None

    family = classify(sql_type)

    if family.is_temporal and isinstance(value, date):
        return None

    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value).strip()

    if family is SqlTypeFamily.INTEGER:
        if isinstance(value, float) and value.is_integer():
            return None
        if isinstance(value, Decimal) and value == value.to_integral_value():
            return None
        if not INTEGER_PATTERN.match(text):
            return f"'{text}' is not a valid integer for {sql_type}"

    elif family is SqlTypeFamily.DECIMAL:
        if not _is_number(text):
            return f"'{text}' is not a valid number for {sql_type}"

    elif family is SqlTypeFamily.BOOLEAN:
        if text.lower() not in BOOLEAN_TOKENS:
            return f"'{text}' is not a valid boolean (expected true/false/1/0/t/f)"

    elif family.is_temporal:
        if parse_datetime(text) is None:
            return f"'{text}' is not a valid date for {sql_type}"

    return None
