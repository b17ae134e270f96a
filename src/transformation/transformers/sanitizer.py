"""
Best-effort repair of values that failed validation.

Repairs are conservative and never raise; anything that cannot be fixed is
returned as-is so the caller's re-validation reports it.
"""

import logging
import re
from typing import Any, Dict

from .base import TRANSFORMATION_TIME, TRANSFORMATIONS_APPLIED, Transformer
from .dates import format_date, recover_datetime
from .types import SqlTypeFamily, classify

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = "$¥￥€£"

TRUE_SYNONYMS = frozenset({"yes", "y", "on", "ok", "1", "true", "t"})
FALSE_SYNONYMS = frozenset({"no", "n", "off", "0", "false", "f"})

_PARENTHESIZED = re.compile(r"^\((.*)\)$")


def recover_number(text: str) -> str:
    """
    Strip accounting decorations from a number.

    Examples:
        >>> recover_number("(1,234.50)")
        '-1234.50'
        >>> recover_number("$ 99")
        '99'
    """
    text = text.strip()
    negative = False

    match = _PARENTHESIZED.match(text)
    if match:
        negative = True
        text = match.group(1).strip()

    if text.startswith("-"):
        negative = not negative
        text = text[1:].lstrip()

    text = text.lstrip(CURRENCY_SYMBOLS).strip().replace(",", "")

    if negative and text:
        return f"-{text}"
    return text


def recover_boolean(text: str) -> str:
    token = text.strip().lower()
    if token in TRUE_SYNONYMS:
        return "true"
    if token in FALSE_SYNONYMS:
        return "false"
    return text


def recover_date(text: str, date_only: bool) -> str:
    parsed = recover_datetime(text)
    if parsed is None:
        return text.strip()
    return format_date(parsed, date_only)


class DataSanitizer(Transformer):
    """
    Repair dirty spreadsheet values for their column type

    Context keys:
        sql_type: Declared SQL type of the target column
    """

    def transform(self, value: Any, context: Dict[str, Any]) -> Any:
        return self.try_recover(value, context.get("sql_type"))

    def try_recover(self, value: Any, sql_type: str | None) -> Any:
        """
        Attempt to turn ``value`` into something valid for ``sql_type``.

        Returns:
            The repaired value, None for blank input, or ``value`` unchanged
            when the type has no repair rule
        """
        if value is None or value == "":
            return None

        family = classify(sql_type)
        if family is SqlTypeFamily.TEXT:
            return value

        with TRANSFORMATION_TIME.labels(transformer_type=self.get_type()).time():
            text = str(value)

            if family.is_temporal:
                result = recover_date(text, date_only=family is SqlTypeFamily.DATE)
            elif family.is_numeric:
                result = recover_number(text)
            else:
                result = recover_boolean(text)

        if result != text:
            TRANSFORMATIONS_APPLIED.labels(
                transformer_type=self.get_type(),
                field_pattern=family.value,
            ).inc()
            logger.debug(f"Recovered {family.value} value for {sql_type}")

        return result
