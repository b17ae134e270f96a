"""
Base transformer class and shared metrics.

A transformer maps one cell value to another given a context describing
where the value is going (``sql_type``, ``table_name``, ``field_name``).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from prometheus_client import Counter, Histogram

from utils.metrics.registry import get_or_create_metric

logger = logging.getLogger(__name__)


TRANSFORMATIONS_APPLIED = get_or_create_metric(
    lambda: Counter(
        "transformations_applied_total",
        "Values changed by a transformer",
        ["transformer_type", "field_pattern"],
    ),
    "transformations_applied_total",
)

TRANSFORMATION_TIME = get_or_create_metric(
    lambda: Histogram(
        "transformation_seconds",
        "Time to apply a transformer to one value",
        ["transformer_type"],
        buckets=[0.00001, 0.0001, 0.0005, 0.001, 0.005, 0.01],
    ),
    "transformation_seconds",
)

TRANSFORMATION_ERRORS = get_or_create_metric(
    lambda: Counter(
        "transformation_errors_total",
        "Values a transformer could not handle",
        ["transformer_type", "error_type"],
    ),
    "transformation_errors_total",
)


class Transformer(ABC):
    """Base class for value transformers."""

    @abstractmethod
    def transform(self, value: Any, context: Dict[str, Any]) -> Any:
        """
        Transform a single value.

        Args:
            value: Value to transform
            context: Where the value is headed (sql_type, table_name, field_name)

        Returns:
            Transformed value
        """

    def get_type(self) -> str:
        """Transformer type label for metrics."""
        return self.__class__.__name__
