"""
Exception hierarchy of the synchronization engine.

Exporter failures are turned into a structured ``SyncResult``; these
exceptions are what travels between the layers before that happens.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ValidationErrorDetail


class SyncError(Exception):
    """Base class for synchronization errors."""


class LoadError(SyncError):
    """The schema mapping or the incoming rows could not be obtained."""


class ConfigurationError(SyncError):
    """Settings are missing or malformed."""


class RowValidationError(SyncError):
    """A row holds a value that stays invalid after sanitization."""

    def __init__(self, detail: "ValidationErrorDetail"):
        super().__init__(
            f"Invalid value in {detail.table_name} row {detail.row_number}, "
            f"column {detail.column_name!r}: {detail.message}"
        )
        self.detail = detail
