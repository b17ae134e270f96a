"""
Decorator form of ``trace_operation``.
"""

import functools

from .context import trace_operation


def trace_function(operation_name: str | None = None, **default_attributes):
    """
    Trace every call of the decorated function.

    Args:
        operation_name: Span name (defaults to ``module.function``)
        **default_attributes: Attributes set on every span

    Example:
        >>> @trace_function("load_sync_plan", component="loader")
        ... def load(version):
        ...     ...
    """
    def decorator(func):
        name = operation_name or f"{func.__module__}.{func.__name__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with trace_operation(name, function=func.__name__, **default_attributes):
                return func(*args, **kwargs)

        return wrapper
    return decorator
