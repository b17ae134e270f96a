"""
Rendering of synchronization results.
"""

from .formatters import (
    export_result_csv,
    export_result_json,
    format_ids,
    format_result_console,
    load_result_json,
)

__all__ = [
    "export_result_csv",
    "export_result_json",
    "format_ids",
    "format_result_console",
    "load_result_json",
]
