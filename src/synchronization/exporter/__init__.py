"""
Applying diffs to the live store.
"""

from .structure import TableStructureManager, unique_index_name
from .sync import TransactionalExporter
from .writer import RowWriter

__all__ = [
    "TransactionalExporter",
    "TableStructureManager",
    "RowWriter",
    "unique_index_name",
]
