"""
Row signatures: one comparison key per row.

A signature joins the normalized value of every target column, in column
order. Two rows are data-identical for a column set iff their signatures
are equal.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from transformation.transformers.normalizer import normalize_value

from ..models import Row, TargetColumn

SIGNATURE_SEPARATOR = " | "

# (value, column) -> value, applied before normalization
ValueHook = Callable[[Any, TargetColumn], Any]


@dataclass(frozen=True)
class RowSignature:
    parts: tuple[str, ...]

    @property
    def signature(self) -> str:
        return SIGNATURE_SEPARATOR.join(self.parts)


def resolve_value(row: Row, column: TargetColumn) -> Any:
    """Value of ``column`` in ``row``: database name first, then source header."""
    if column.name in row:
        return row[column.name]
    return row.get(column.original_name)


def signature_parts(
    row: Row,
    columns: Sequence[TargetColumn],
    value_hook: ValueHook | None = None,
) -> RowSignature:
    parts = []
    for column in columns:
        value = resolve_value(row, column)
        if value_hook is not None:
            value = value_hook(value, column)
        parts.append(normalize_value(value, column.sql_type))
    return RowSignature(tuple(parts))


def build_signature(
    row: Row,
    columns: Sequence[TargetColumn],
    value_hook: ValueHook | None = None,
) -> str:
    """
    Comparison key of ``row`` over ``columns``.

    Args:
        row: Live row (keyed by database names) or incoming row (keyed by
            source headers)
        columns: Target columns, in table order
        value_hook: Optional per-value transform applied before normalizing

    Returns:
        Normalized values joined by ``" | "``
    """
    return signature_parts(row, columns, value_hook).signature


def column_names(columns: Iterable[TargetColumn]) -> list[str]:
    return [column.name for column in columns]
