"""
Table structure maintenance: create, rebuild, comments, unique indexes.
"""

import logging
from typing import Mapping, Sequence

from utils.sql_safety import exceeds_identifier_limit

from ..models import TableBatch
from ..store import LiveStore

logger = logging.getLogger(__name__)


def unique_index_name(table_name: str, column_name: str) -> str:
    return f"idx_unique_{table_name}_{column_name}"


class TableStructureManager:
    """
    Applies the DDL side of a table sync inside the run's transaction

    Args:
        store: Store holding the open transaction
        unique_keys: Dimension table natural keys, ``{table: (column, ...)}``
    """

    def __init__(self, store: LiveStore, unique_keys: Mapping[str, Sequence[str]]):
        self.store = store
        self.unique_keys = unique_keys

    def create(self, batch: TableBatch, drop_first: bool) -> None:
        if drop_first:
            logger.warning(f"Dropping table {batch.table_name}")
            self.store.drop_table(batch.table_name)
        self.store.create_table(batch.table_name, batch.columns)
        logger.info(f"Created table {batch.table_name} with {len(batch.columns)} columns")

    def write_comments(self, batch: TableBatch) -> None:
        """Rewrite table and column descriptions."""
        if batch.comment:
            self.store.comment_on_table(batch.table_name, batch.comment)
        for column in batch.columns:
            comment = column.comment or column.original_name
            if comment:
                self.store.comment_on_column(batch.table_name, column.name, comment)

    def ensure_unique_indexes(self, batch: TableBatch) -> list[str]:
        """
        Create missing unique indexes on the table's configured key columns.

        Each creation runs in a savepoint: a failure (for example duplicate
        values) is logged and leaves the transaction usable.

        Returns:
            Names of the indexes created by this call
        """
        created = []
        present = {column.name for column in batch.columns}

        for column_name in self.unique_keys.get(batch.table_name, ()):
            if column_name not in present:
                continue

            index_name = unique_index_name(batch.table_name, column_name)
            if exceeds_identifier_limit(index_name):
                logger.warning(f"Index name {index_name} will be truncated by PostgreSQL")

            if self.store.index_exists(index_name):
                continue

            try:
                with self.store.savepoint("unique_index"):
                    self.store.create_unique_index(index_name, batch.table_name, column_name)
            except Exception as e:
                logger.warning(
                    f"Could not create unique index {index_name} on "
                    f"{batch.table_name}.{column_name}: {e}"
                )
                continue

            created.append(index_name)
            logger.info(f"Created unique index {index_name}")

        return created
