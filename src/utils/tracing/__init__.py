"""
Distributed tracing using OpenTelemetry.

Spans cover a synchronization run, each table's diff and write phases, and
the post-commit foreign key phase. Until ``initialize_tracing`` is called the
global no-op provider is used, so library code can always open spans.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .decorators import trace_function
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "trace_function",
    "add_span_attributes",
    "add_span_event",
]
