"""
Classification of declared SQL column types.

Mapping documents carry free-form PostgreSQL type text (``VARCHAR(255)``,
``DECIMAL(18,2)``, ``TIMESTAMP``...). Normalization, validation and repair
only care which family a type belongs to.
"""

from enum import Enum
from functools import lru_cache


class SqlTypeFamily(str, Enum):
    """Value handling family of a declared SQL type."""

    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    TIMESTAMP = "timestamp"
    TEXT = "text"

    @property
    def is_numeric(self) -> bool:
        return self in (SqlTypeFamily.INTEGER, SqlTypeFamily.DECIMAL)

    @property
    def is_temporal(self) -> bool:
        return self in (SqlTypeFamily.DATE, SqlTypeFamily.TIMESTAMP)


_DECIMAL_MARKERS = ("DECIMAL", "NUMERIC", "FLOAT", "REAL", "DOUBLE")


@lru_cache(maxsize=256)
def classify(sql_type: str | None) -> SqlTypeFamily:
    """
    Return the family of ``sql_type``.

    Matching is by substring on the upper-cased type, so ``BIGINT`` and
    ``SERIAL`` are integers and ``TIMESTAMPTZ`` is a timestamp. Types that
    carry a time component are timestamps; ``DATE`` alone is date-only.

    Examples:
        >>> classify("DECIMAL(18,2)")
        <SqlTypeFamily.DECIMAL: 'decimal'>
        >>> classify("varchar(255)")
        <SqlTypeFamily.TEXT: 'text'>
    """
    upper = (sql_type or "").upper()

    if "INTERVAL" in upper or "POINT" in upper:
        return SqlTypeFamily.TEXT
    if "INT" in upper or "SERIAL" in upper:
        return SqlTypeFamily.INTEGER
    if any(marker in upper for marker in _DECIMAL_MARKERS):
        return SqlTypeFamily.DECIMAL
    if "BOOL" in upper:
        return SqlTypeFamily.BOOLEAN
    if "TIME" in upper:
        return SqlTypeFamily.TIMESTAMP
    if "DATE" in upper:
        return SqlTypeFamily.DATE
    return SqlTypeFamily.TEXT
