"""
Transactional exporter.

One run loads the plan, then inside a single transaction brings every table
up to date: diff, create or rebuild, rewrite comments, ensure unique
indexes, insert and update. The first validation or database error rolls
the whole transaction back. After commit, foreign keys are added one by one
in autocommit mode; a failing constraint is logged and skipped.
"""

import logging
import time
from typing import Callable, Protocol

from opentelemetry import trace

from transformation.transformers.masking import DataMasker
from transformation.transformers.pipeline import WritePipeline
from utils.logging import ContextLogger
from utils.metrics import SyncMetrics
from utils.tracing import add_span_event, trace_operation

from ..config import SyncSettings
from ..diff import DiffCalculator
from ..errors import ConfigurationError, LoadError, RowValidationError
from ..models import (
    ErrorType,
    Relationship,
    Strategy,
    SyncPlan,
    SyncRequest,
    SyncResult,
    SyncStats,
    TableBatch,
    TableSyncDetail,
)
from ..store import LiveStore, PostgresStore
from .structure import TableStructureManager
from .writer import RowWriter

logger = logging.getLogger(__name__)

# (connection target, statement timeout ms) -> open store
StoreFactory = Callable[[str, int], LiveStore]


class PlanLoader(Protocol):
    def load(self, version: str) -> SyncPlan: ...


class TableAction:
    CREATE = "create"
    REBUILD = "rebuild"
    OVERWRITE = "overwrite"
    INCREMENTAL = "incremental"


class TransactionalExporter:
    """
    Runs synchronization requests

    Args:
        settings: Process settings (defaults, masking rules, unique keys)
        loader: Produces the plan for a schema version
        store_factory: Opens the live store; defaults to PostgreSQL
        metrics: Optional metrics sink
    """

    def __init__(
        self,
        settings: SyncSettings,
        loader: PlanLoader,
        store_factory: StoreFactory | None = None,
        metrics: SyncMetrics | None = None,
    ):
        self.settings = settings
        self.loader = loader
        self.store_factory = store_factory or PostgresStore.connect
        self.metrics = metrics
        self.masker = DataMasker(settings.masking)
        self.pipeline = WritePipeline(masker=self.masker)

    def sync(self, request: SyncRequest) -> SyncResult:
        """
        Execute one synchronization run.

        Never raises for load, validation or database failures; they are
        reported through the returned result.
        """
        started = time.monotonic()
        strategy = request.strategy or self.settings.default_strategy
        run_log = ContextLogger(__name__, schema_version=request.schema_version, strategy=strategy.value)

        with trace_operation(
            "sync_run",
            kind=trace.SpanKind.INTERNAL,
            schema_version=request.schema_version,
            strategy=strategy.value,
        ):
            result = self._run(request, strategy, run_log)

        if self.metrics is not None:
            self.metrics.record_run(strategy.value, result.success, time.monotonic() - started)

        if result.success:
            run_log.info(
                f"Sync finished: {result.stats.tables} tables changed, {result.stats.rows} rows written"
            )
        else:
            run_log.error(f"Sync failed ({result.error_type.value}): {result.error}")
        return result

    def _run(self, request: SyncRequest, strategy: Strategy, run_log: ContextLogger) -> SyncResult:
        target = request.connection_target or self.settings.connection_target
        if not target:
            return SyncResult.failure(
                "Database connection target is missing; set POSTGRES_URL or pass one explicitly",
                ErrorType.CONFIG_ERROR,
                strategy=strategy.value,
            )

        try:
            plan = self.loader.load(request.schema_version)
        except (LoadError, ConfigurationError) as e:
            return SyncResult.failure(str(e), ErrorType.LOAD_ERROR, strategy=strategy.value)

        run_log.info(f"Starting sync of {len(plan.tables)} tables")

        try:
            store = self.store_factory(target, self.settings.statement_timeout_ms)
        except Exception as e:
            logger.error(f"Cannot connect to database: {e}")
            return SyncResult.failure(str(e), ErrorType.DB_ERROR, strategy=strategy.value)

        try:
            return self._apply(store, plan, strategy, run_log)
        finally:
            store.close()

    def _apply(
        self,
        store: LiveStore,
        plan: SyncPlan,
        strategy: Strategy,
        run_log: ContextLogger,
    ) -> SyncResult:
        stats = SyncStats(relationships=len(plan.relationships), strategy=strategy.value)
        details: list[TableSyncDetail] = []

        try:
            store.begin()
            for batch in plan.tables:
                detail = self._sync_table(store, batch, strategy, run_log.bind(table_name=batch.table_name))
                details.append(detail)
                if detail.insert_count or detail.update_count:
                    stats.tables += 1
                    stats.rows += detail.insert_count + detail.update_count
            store.commit()
        except RowValidationError as e:
            self._rollback(store)
            return SyncResult.failure(
                str(e), ErrorType.VALIDATION_ERROR, details=e.detail, strategy=strategy.value
            )
        except Exception as e:
            logger.error(f"Database error, rolling back: {e}", exc_info=True)
            self._rollback(store)
            return SyncResult.failure(str(e), ErrorType.DB_ERROR, strategy=strategy.value)

        run_log.info(f"Committed data for {len(details)} tables")
        foreign_key_failures = self._apply_relationships(store, plan.relationships)

        return SyncResult(
            success=True,
            stats=stats,
            details_report=details,
            foreign_key_failures=foreign_key_failures,
        )

    @staticmethod
    def _rollback(store: LiveStore) -> None:
        try:
            store.rollback()
        except Exception as e:
            logger.error(f"Rollback failed: {e}")

    def _sync_table(
        self,
        store: LiveStore,
        batch: TableBatch,
        strategy: Strategy,
        table_log: ContextLogger,
    ) -> TableSyncDetail:
        if not batch.columns:
            table_log.warning("Skipping table without enabled columns")
            return TableSyncDetail(table_name=batch.table_name, action="skipped")

        with trace_operation("sync_table", table=batch.table_name) as span:
            calculator = DiffCalculator(
                store,
                batch_size=self.settings.cursor_batch_size,
                mismatch_ratio=self.settings.mismatch_ratio,
                masker=self.masker,
                metrics=self.metrics,
            )
            diff = calculator.calculate(batch.table_name, batch.columns, batch.rows)

            structure = TableStructureManager(store, self.settings.unique_keys)
            writer = RowWriter(
                store,
                self.pipeline,
                insert_batch_size=self.settings.insert_batch_size,
                metrics=self.metrics,
            )

            if diff.is_new_table:
                action = TableAction.CREATE
            elif diff.is_schema_changed:
                action = TableAction.REBUILD
            elif strategy is Strategy.OVERWRITE:
                action = TableAction.OVERWRITE
            else:
                action = TableAction.INCREMENTAL
            span.set_attribute("sync.action", action)

            detail = TableSyncDetail(table_name=batch.table_name, action=action)

            if action != TableAction.INCREMENTAL:
                structure.create(batch, drop_first=action != TableAction.CREATE)
                structure.write_comments(batch)
                structure.ensure_unique_indexes(batch)
                detail.insert_ids = writer.insert_rows(batch.table_name, batch.columns, batch.rows)
            else:
                structure.write_comments(batch)
                structure.ensure_unique_indexes(batch)
                if not diff.has_changes:
                    table_log.info("No changes")
                else:
                    detail.insert_ids = writer.insert_rows(
                        batch.table_name,
                        batch.columns,
                        diff.to_insert,
                        first_row_number=diff.db_count + 1,
                    )
                    detail.update_ids = writer.update_rows(batch.table_name, batch.columns, diff.to_update)

            detail.insert_count = len(detail.insert_ids)
            detail.update_count = len(detail.update_ids)
            add_span_event("table_written", inserts=detail.insert_count, updates=detail.update_count)

        table_log.info(
            f"{action}: {detail.insert_count} inserted, {detail.update_count} updated",
            action=action,
        )
        return detail

    def _apply_relationships(self, store: LiveStore, relationships: list[Relationship]) -> list[str]:
        """Add missing foreign keys after commit; returns the names that failed."""
        if not relationships:
            return []

        failures = []
        store.set_autocommit(True)

        with trace_operation("apply_foreign_keys", count=len(relationships)):
            for relationship in relationships:
                name = relationship.constraint_name
                try:
                    if store.constraint_exists(name):
                        logger.debug(f"Foreign key {name} already exists")
                        continue
                    store.add_foreign_key(relationship)
                    logger.info(
                        f"Added foreign key {name}: {relationship.source_table}.{relationship.source_db_field} -> "
                        f"{relationship.target_table}.{relationship.target_db_field}"
                    )
                except Exception as e:
                    failures.append(name)
                    if self.metrics is not None:
                        self.metrics.record_foreign_key_failure(relationship.source_table)
                    logger.warning(f"Could not add foreign key {name}: {e}")

        return failures
