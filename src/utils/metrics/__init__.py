"""
Prometheus metrics for the synchronization engine

Usage:
    from utils.metrics import MetricsPublisher, SyncMetrics

    MetricsPublisher(port=9091).start()

    metrics = SyncMetrics()
    metrics.record_rows_written("tenants", "insert", 500)
"""

from .publisher import MetricsPublisher
from .registry import get_or_create_metric
from .sync import SyncMetrics

__all__ = [
    "MetricsPublisher",
    "SyncMetrics",
    "get_or_create_metric",
]
