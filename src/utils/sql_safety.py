"""
Identifier and type checks for dynamically built PostgreSQL statements.

Table and column names come from user-authored schema mappings, so they may
contain any printable text (including CJK). They are always emitted as
double-quoted identifiers with embedded quotes doubled. Declared column
types are spliced into DDL verbatim and are therefore checked against a
conservative grammar first.
"""

import re

# PostgreSQL truncates identifiers longer than this many bytes
MAX_IDENTIFIER_BYTES = 63

VALID_SQL_TYPE = re.compile(
    r"^[A-Za-z][A-Za-z ]*(\(\s*\d+\s*(,\s*\d+\s*)?\))?(\s*\[\])?$"
)


def validate_identifier(identifier: str) -> None:
    """
    Validate a table, column, index or constraint name.

    Args:
        identifier: The identifier to validate

    Raises:
        ValueError: If the identifier is empty or contains a NUL character
    """
    if not identifier or not isinstance(identifier, str):
        raise ValueError("SQL identifier cannot be empty")

    if "\x00" in identifier:
        raise ValueError(f"Invalid SQL identifier: {identifier!r} contains a NUL character")


def quote_identifier(identifier: str) -> str:
    """
    Quote an identifier for PostgreSQL.

    Args:
        identifier: Table or column name

    Returns:
        The identifier wrapped in double quotes, inner quotes doubled
    """
    validate_identifier(identifier)
    return '"' + identifier.replace('"', '""') + '"'


def validate_sql_type(sql_type: str) -> str:
    """
    Check a declared column type such as ``VARCHAR(255)`` or ``DECIMAL(18,2)``.

    Returns:
        The type, stripped of surrounding whitespace

    Raises:
        ValueError: If the type does not look like a plain PostgreSQL type name
    """
    candidate = (sql_type or "").strip()
    if not VALID_SQL_TYPE.match(candidate):
        raise ValueError(f"Invalid SQL type: {sql_type!r}")
    return candidate


def exceeds_identifier_limit(identifier: str) -> bool:
    """True when PostgreSQL would silently truncate ``identifier``."""
    return len(identifier.encode("utf-8")) > MAX_IDENTIFIER_BYTES
