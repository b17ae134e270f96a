"""
Metrics for synchronization runs.

Tracks run outcomes per strategy, rows written per table and operation,
validation and foreign key failures, and diff cost.
"""

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from .registry import get_or_create_metric


class SyncMetrics:
    """
    Prometheus collectors for the exporter and diff calculator

    Args:
        registry: Registry to register into (default: global REGISTRY)
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY
        r = self.registry

        self.sync_runs_total = get_or_create_metric(
            lambda: Counter(
                "sync_runs_total",
                "Synchronization runs by strategy and outcome",
                ["strategy", "status"],
                registry=r,
            ),
            "sync_runs_total",
            r,
        )
        self.sync_duration_seconds = get_or_create_metric(
            lambda: Histogram(
                "sync_duration_seconds",
                "Wall time of a synchronization run",
                ["strategy"],
                buckets=(0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800),
                registry=r,
            ),
            "sync_duration_seconds",
            r,
        )
        self.rows_written_total = get_or_create_metric(
            lambda: Counter(
                "sync_rows_written_total",
                "Rows inserted or updated",
                ["table_name", "operation"],
                registry=r,
            ),
            "sync_rows_written_total",
            r,
        )
        self.validation_failures_total = get_or_create_metric(
            lambda: Counter(
                "sync_validation_failures_total",
                "Values that stayed invalid after sanitization",
                ["table_name"],
                registry=r,
            ),
            "sync_validation_failures_total",
            r,
        )
        self.foreign_key_failures_total = get_or_create_metric(
            lambda: Counter(
                "sync_foreign_key_failures_total",
                "Foreign key constraints that could not be applied",
                ["source_table"],
                registry=r,
            ),
            "sync_foreign_key_failures_total",
            r,
        )
        self.diff_duration_seconds = get_or_create_metric(
            lambda: Histogram(
                "sync_diff_duration_seconds",
                "Time spent comparing live and incoming rows",
                ["table_name"],
                buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60),
                registry=r,
            ),
            "sync_diff_duration_seconds",
            r,
        )
        self.mass_mismatch_total = get_or_create_metric(
            lambda: Counter(
                "sync_mass_mismatch_total",
                "Diffs where most incoming rows were classified as changed",
                ["table_name"],
                registry=r,
            ),
            "sync_mass_mismatch_total",
            r,
        )
        self.last_success_timestamp = get_or_create_metric(
            lambda: Gauge(
                "sync_last_success_timestamp",
                "Unix time of the last successful run",
                registry=r,
            ),
            "sync_last_success_timestamp",
            r,
        )

    def record_run(self, strategy: str, success: bool, duration: float) -> None:
        status = "success" if success else "failure"
        self.sync_runs_total.labels(strategy=strategy, status=status).inc()
        self.sync_duration_seconds.labels(strategy=strategy).observe(duration)
        if success:
            self.last_success_timestamp.set_to_current_time()

    def record_rows_written(self, table_name: str, operation: str, count: int) -> None:
        if count:
            self.rows_written_total.labels(table_name=table_name, operation=operation).inc(count)

    def record_validation_failure(self, table_name: str) -> None:
        self.validation_failures_total.labels(table_name=table_name).inc()

    def record_foreign_key_failure(self, source_table: str) -> None:
        self.foreign_key_failures_total.labels(source_table=source_table).inc()

    def record_diff(self, table_name: str, duration: float, mass_mismatch: bool) -> None:
        self.diff_duration_seconds.labels(table_name=table_name).observe(duration)
        if mass_mismatch:
            self.mass_mismatch_total.labels(table_name=table_name).inc()
