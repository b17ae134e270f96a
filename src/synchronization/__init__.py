"""
Incremental synchronization of spreadsheet-derived rows into PostgreSQL

Components:
- loader: schema mappings and incoming rows
- diff: row signatures and the positional diff against a live table
- exporter: transactional application of diffs
- report: result rendering
- cli: the ``sheet-sync`` command

Usage:
    from synchronization import (
        SchemaLoader, JsonRowSource, SyncRequest, SyncSettings, TransactionalExporter,
    )

    settings = SyncSettings.from_env()
    loader = SchemaLoader(settings.data_root, JsonRowSource(settings.data_root))
    result = TransactionalExporter(settings, loader).sync(SyncRequest("v3"))
"""

from .config import SyncSettings
from .errors import ConfigurationError, LoadError, RowValidationError, SyncError
from .exporter import TransactionalExporter
from .loader import InMemoryRowSource, JsonRowSource, RowSource, SchemaLoader
from .models import Strategy, SyncRequest, SyncResult

__version__ = "1.0.0"
__all__ = [
    "SyncSettings",
    "SyncError",
    "LoadError",
    "ConfigurationError",
    "RowValidationError",
    "TransactionalExporter",
    "SchemaLoader",
    "RowSource",
    "JsonRowSource",
    "InMemoryRowSource",
    "Strategy",
    "SyncRequest",
    "SyncResult",
]
