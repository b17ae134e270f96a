"""
Row preparation and batched writes.

Every value goes through the write pipeline (validate, repair, mask) before
it is bound to a statement. The first value that cannot be repaired aborts
the write with a ``RowValidationError`` pointing at the offending cell.
"""

import logging
from typing import Any, Sequence

from transformation.transformers.pipeline import WritePipeline
from transformation.transformers.validator import InvalidValueError
from utils.metrics import SyncMetrics
from utils.tracing import add_span_attributes

from ..errors import RowValidationError
from ..models import Row, RowUpdate, TargetColumn, ValidationErrorDetail
from ..store import LiveStore

logger = logging.getLogger(__name__)

DEFAULT_INSERT_BATCH_SIZE = 500


def source_value(row: Row, column: TargetColumn) -> Any:
    """Incoming value of ``column``: source header first, then database name."""
    if column.original_name in row:
        return row[column.original_name]
    return row.get(column.name)


class RowWriter:
    """
    Writes prepared rows of one run through a ``LiveStore``

    Args:
        store: Store holding the open transaction
        pipeline: Per-value preparation
        insert_batch_size: Rows per INSERT statement
        metrics: Optional metrics sink
    """

    def __init__(
        self,
        store: LiveStore,
        pipeline: WritePipeline,
        insert_batch_size: int = DEFAULT_INSERT_BATCH_SIZE,
        metrics: SyncMetrics | None = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.insert_batch_size = insert_batch_size
        self.metrics = metrics

    def prepare_row(
        self,
        table_name: str,
        columns: Sequence[TargetColumn],
        row: Row,
        row_number: int,
    ) -> list[Any]:
        """
        Values of ``row`` ready to bind, in column order.

        Args:
            row_number: 1-based position of the row in the incoming batch,
                used in error reports

        Raises:
            RowValidationError: If a value stays invalid after repair
        """
        values = []
        for column in columns:
            raw = source_value(row, column)
            try:
                values.append(self.pipeline.prepare(raw, column.sql_type, table_name, column.name))
            except InvalidValueError as e:
                if self.metrics is not None:
                    self.metrics.record_validation_failure(table_name)
                raise RowValidationError(ValidationErrorDetail(
                    table_name=table_name,
                    row_number=row_number,
                    column_name=column.original_name,
                    target_type=column.sql_type,
                    invalid_value=raw,
                    message=e.message,
                    row_data=dict(row),
                )) from e
        return values

    def insert_rows(
        self,
        table_name: str,
        columns: Sequence[TargetColumn],
        rows: Sequence[Row],
        first_row_number: int = 1,
    ) -> list[int]:
        """
        Insert ``rows`` in batches and return the new ids in row order.

        Args:
            first_row_number: Row number reported for ``rows[0]``
        """
        names = [column.name for column in columns]
        inserted_ids: list[int] = []

        for start in range(0, len(rows), self.insert_batch_size):
            batch = rows[start:start + self.insert_batch_size]
            prepared = [
                self.prepare_row(table_name, columns, row, first_row_number + start + offset)
                for offset, row in enumerate(batch)
            ]
            inserted_ids.extend(self.store.insert_rows(table_name, names, prepared))
            logger.debug(f"Inserted {len(batch)} rows into {table_name} (offset {start})")

        if self.metrics is not None:
            self.metrics.record_rows_written(table_name, "insert", len(inserted_ids))
        add_span_attributes(rows_inserted=len(inserted_ids))
        return inserted_ids

    def update_rows(
        self,
        table_name: str,
        columns: Sequence[TargetColumn],
        updates: Sequence[RowUpdate],
    ) -> list[int]:
        """Update each live row in place, one statement per row; returns the ids."""
        names = [column.name for column in columns]
        updated_ids: list[int] = []

        for index, update in enumerate(updates):
            row_number = (update.position if update.position is not None else index) + 1
            values = self.prepare_row(table_name, columns, update.data, row_number)
            self.store.update_row(table_name, names, values, update.id)
            updated_ids.append(update.id)

        if self.metrics is not None:
            self.metrics.record_rows_written(table_name, "update", len(updated_ids))
        add_span_attributes(rows_updated=len(updated_ids))
        return updated_ids
