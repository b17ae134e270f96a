"""
Idempotent metric registration.
"""

from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the collector already registered under its name.

    Lets several components (and repeated test fixtures) share one registry.

    Args:
        metric_factory: Callable creating the metric, e.g. ``lambda: Counter(...)``
        metric_name: Name the metric registers under
        registry: Registry the factory registers into

    Returns:
        The new or previously registered metric
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise
