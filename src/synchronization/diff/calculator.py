"""
Diff calculation between incoming rows and a live table.

Rows are matched by position: live row *i* (ascending ``id``) is compared
with incoming row *i*. No business key is needed, at the cost of assuming
the upstream row order is stable between runs.
"""

import logging
import time
from typing import Any, Sequence

from opentelemetry import trace

from transformation.transformers.masking import DataMasker
from utils.metrics import SyncMetrics
from utils.tracing import trace_operation

from ..models import DiffResult, Row, RowUpdate, TargetColumn
from ..store import LiveStore
from .signature import ValueHook, column_names, signature_parts

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000
DEFAULT_MISMATCH_RATIO = 0.8


class DiffCalculator:
    """
    Classifies a table as new, structurally changed or incremental

    Args:
        store: Live store to inspect; never written to
        batch_size: Live rows fetched per cursor round trip
        mismatch_ratio: Share of changed rows above which a mass mismatch is
            reported
        masker: When given, incoming values are masked before signing so
            that stored masked values compare equal to their source
        metrics: Optional metrics sink
    """

    def __init__(
        self,
        store: LiveStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        mismatch_ratio: float = DEFAULT_MISMATCH_RATIO,
        masker: DataMasker | None = None,
        metrics: SyncMetrics | None = None,
    ):
        self.store = store
        self.batch_size = batch_size
        self.mismatch_ratio = mismatch_ratio
        self.masker = masker
        self.metrics = metrics

    def _incoming_hook(self, table_name: str) -> ValueHook | None:
        if self.masker is None:
            return None
        masker = self.masker

        def mask_incoming(value: Any, column: TargetColumn) -> Any:
            return masker.mask(value, table_name, column.name)

        return mask_incoming

    def calculate(
        self,
        table_name: str,
        columns: Sequence[TargetColumn],
        incoming_rows: Sequence[Row],
    ) -> DiffResult:
        """
        Compute the diff of ``incoming_rows`` against the live table.

        Args:
            table_name: Live table name
            columns: Target columns, in table order
            incoming_rows: Incoming rows keyed by source header

        Returns:
            DiffResult; ``to_update`` entries carry the live id and the
            incoming row
        """
        started = time.monotonic()

        with trace_operation(
            "diff_table",
            kind=trace.SpanKind.INTERNAL,
            table=table_name,
            incoming_rows=len(incoming_rows),
        ) as span:
            if not self.store.table_exists(table_name):
                logger.info(f"Table {table_name} does not exist; all {len(incoming_rows)} rows are inserts")
                return DiffResult(is_new_table=True, to_insert=list(incoming_rows))

            live_columns = set(self.store.column_names(table_name))
            missing = [column.name for column in columns if column.name not in live_columns]
            if missing:
                db_count = self.store.row_count(table_name)
                logger.warning(
                    f"Table {table_name} is missing columns {missing}; "
                    f"{db_count} live rows will be rebuilt"
                )
                return DiffResult(
                    is_schema_changed=True,
                    to_insert=list(incoming_rows),
                    db_count=db_count,
                )

            result = self._compare_positionally(table_name, columns, incoming_rows)

            span.set_attribute("rows.to_insert", len(result.to_insert))
            span.set_attribute("rows.to_update", len(result.to_update))
            span.set_attribute("rows.live", result.db_count)

        mass_mismatch = self._is_mass_mismatch(result, len(incoming_rows))
        if self.metrics is not None:
            self.metrics.record_diff(table_name, time.monotonic() - started, mass_mismatch)

        logger.info(
            f"Diff for {table_name}: {len(result.to_insert)} inserts, "
            f"{len(result.to_update)} updates, {result.db_count} live rows"
        )
        return result

    def _compare_positionally(
        self,
        table_name: str,
        columns: Sequence[TargetColumn],
        incoming_rows: Sequence[Row],
    ) -> DiffResult:
        hook = self._incoming_hook(table_name)
        to_update: list[RowUpdate] = []
        position = 0
        first_mismatch = None

        for live_row in self.store.iter_rows(table_name, column_names(columns), self.batch_size):
            # Live rows beyond the incoming batch are left untouched
            if position >= len(incoming_rows):
                position += 1
                continue

            incoming = incoming_rows[position]
            live_signature = signature_parts(live_row, columns)
            incoming_signature = signature_parts(incoming, columns, hook)

            if live_signature != incoming_signature:
                to_update.append(RowUpdate(id=live_row["id"], data=incoming, position=position))
                if first_mismatch is None:
                    first_mismatch = (position, live_signature, incoming_signature)
            position += 1

        db_count = position
        to_insert = list(incoming_rows[db_count:])
        result = DiffResult(to_insert=to_insert, to_update=to_update, db_count=db_count)

        if self._is_mass_mismatch(result, len(incoming_rows)) and first_mismatch is not None:
            index, live_signature, incoming_signature = first_mismatch
            differing = [
                column.name
                for column, live_part, incoming_part in zip(
                    columns, live_signature.parts, incoming_signature.parts
                )
                if live_part != incoming_part
            ]
            logger.warning(
                f"Mass mismatch in {table_name}: "
                f"{len(to_insert) + len(to_update)} of {len(incoming_rows)} incoming rows "
                f"differ from {db_count} live rows. First difference at position {index} "
                f"in columns {differing}",
                extra={
                    "table_name": table_name,
                    "live_signature": live_signature.signature,
                    "incoming_signature": incoming_signature.signature,
                },
            )

        return result

    def _is_mass_mismatch(self, result: DiffResult, incoming_count: int) -> bool:
        if result.db_count == 0 or incoming_count == 0:
            return False
        changed = len(result.to_insert) + len(result.to_update)
        return changed > incoming_count * self.mismatch_ratio
