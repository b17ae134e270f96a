"""
Span context managers and helpers for the current span.
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run the enclosed block inside a new span.

    Exceptions are recorded on the span and re-raised.

    Args:
        operation_name: Span name
        kind: Span kind (INTERNAL, CLIENT, ...)
        **attributes: Span attributes, stringified

    Example:
        >>> with trace_operation("diff_table", table="tenants") as span:
        ...     result = calculator.calculate("tenants", columns, rows)
        ...     span.set_attribute("rows.to_insert", len(result.to_insert))
    """
    with get_tracer().start_as_current_span(operation_name, kind=kind) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            raise


def add_span_attributes(**attributes):
    """Set attributes on the current span if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        for key, value in attributes.items():
            current_span.set_attribute(key, str(value))


def add_span_event(name: str, **attributes):
    """Add a timestamped event to the current span if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(name, attributes={k: str(v) for k, v in attributes.items()})
