"""
Gateway to the live relational store.

The engine touches the database only through ``LiveStore``: catalog
introspection, a streaming row cursor, and the handful of DDL/DML
statements a sync needs. ``PostgresStore`` implements it over one
psycopg2 connection owned for the duration of a run.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import psycopg2
import psycopg2.extensions
from opentelemetry import trace

from utils.database import connect_postgres
from utils.sql_safety import quote_identifier, validate_sql_type
from utils.tracing import trace_operation

from .models import Relationship, Row, TargetColumn

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"

_cursor_ids = itertools.count(1)


class LiveStore(ABC):
    """Operations the diff calculator and exporter issue against the store."""

    # Introspection

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def column_names(self, table_name: str) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def row_count(self, table_name: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def iter_rows(self, table_name: str, columns: Sequence[str], batch_size: int) -> Iterator[Row]:
        """Yield live rows (``id`` plus ``columns``) by ascending id, ``batch_size`` at a time."""
        raise NotImplementedError

    @abstractmethod
    def index_exists(self, index_name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def constraint_exists(self, constraint_name: str) -> bool:
        raise NotImplementedError

    # DDL

    @abstractmethod
    def create_table(self, table_name: str, columns: Sequence[TargetColumn]) -> None:
        raise NotImplementedError

    @abstractmethod
    def drop_table(self, table_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def comment_on_table(self, table_name: str, comment: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def comment_on_column(self, table_name: str, column_name: str, comment: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_unique_index(self, index_name: str, table_name: str, column_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def add_foreign_key(self, relationship: Relationship) -> None:
        raise NotImplementedError

    # DML

    @abstractmethod
    def insert_rows(
        self, table_name: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> list[int]:
        """Insert ``rows`` in one statement and return their new ids in order."""
        raise NotImplementedError

    @abstractmethod
    def update_row(
        self, table_name: str, columns: Sequence[str], values: Sequence[Any], row_id: int
    ) -> None:
        raise NotImplementedError

    # Transaction control

    @abstractmethod
    def begin(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def savepoint(self, name: str):
        """Context manager rolling back to a savepoint if the block raises."""
        raise NotImplementedError

    @abstractmethod
    def set_autocommit(self, enabled: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError


def build_create_table(table_name: str, columns: Sequence[TargetColumn]) -> str:
    """``CREATE TABLE`` with a serial ``id`` primary key and one column per target column."""
    definitions = ["id SERIAL PRIMARY KEY"]
    for column in columns:
        definitions.append(f"{quote_identifier(column.name)} {validate_sql_type(column.sql_type)}")
    return f"CREATE TABLE {quote_identifier(table_name)} ({', '.join(definitions)})"


def build_insert(table_name: str, columns: Sequence[str], row_count: int) -> str:
    """Multi-row ``INSERT ... VALUES (...), (...) RETURNING id`` with %s placeholders."""
    placeholders = "(" + ", ".join(["%s"] * len(columns)) + ")"
    return (
        f"INSERT INTO {quote_identifier(table_name)} "
        f"({', '.join(quote_identifier(c) for c in columns)}) "
        f"VALUES {', '.join([placeholders] * row_count)} RETURNING id"
    )


def build_update(table_name: str, columns: Sequence[str]) -> str:
    assignments = ", ".join(f"{quote_identifier(c)} = %s" for c in columns)
    return f"UPDATE {quote_identifier(table_name)} SET {assignments} WHERE id = %s"


def build_select_rows(table_name: str, columns: Sequence[str]) -> str:
    selected = ", ".join(["id", *(quote_identifier(c) for c in columns)])
    return f"SELECT {selected} FROM {quote_identifier(table_name)} ORDER BY id ASC"


def build_add_foreign_key(relationship: Relationship) -> str:
    return (
        f"ALTER TABLE {quote_identifier(relationship.source_table)} "
        f"ADD CONSTRAINT {quote_identifier(relationship.constraint_name)} "
        f"FOREIGN KEY ({quote_identifier(relationship.source_db_field)}) "
        f"REFERENCES {quote_identifier(relationship.target_table)} "
        f"({quote_identifier(relationship.target_db_field)})"
    )


class PostgresStore(LiveStore):
    """
    ``LiveStore`` over a psycopg2 connection

    Args:
        connection: Open, non-autocommit connection; the store closes it
        schema: Schema holding the managed tables
    """

    def __init__(self, connection: psycopg2.extensions.connection, schema: str = DEFAULT_SCHEMA):
        self.connection = connection
        self.schema = schema

    @classmethod
    def connect(cls, dsn: str, statement_timeout_ms: int = 60000) -> "PostgresStore":
        return cls(connect_postgres(dsn, statement_timeout_ms=statement_timeout_ms))

    def _execute(self, query: str, params: Sequence[Any] | None = None) -> None:
        with self.connection.cursor() as cursor:
            cursor.execute(query, params)

    def _fetchone(self, query: str, params: Sequence[Any] | None = None):
        with self.connection.cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchone()

    def table_exists(self, table_name: str) -> bool:
        row = self._fetchone(
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = %s AND table_name = %s)",
            (self.schema, table_name),
        )
        return bool(row and row[0])

    def column_names(self, table_name: str) -> list[str]:
        with self.connection.cursor() as cursor:
            cursor.execute(
                "SELECT column_name FROM information_schema.columns "
                "WHERE table_schema = %s AND table_name = %s ORDER BY ordinal_position",
                (self.schema, table_name),
            )
            return [row[0] for row in cursor.fetchall()]

    def row_count(self, table_name: str) -> int:
        row = self._fetchone(f"SELECT COUNT(*) FROM {quote_identifier(table_name)}")
        return int(row[0]) if row else 0

    def iter_rows(self, table_name: str, columns: Sequence[str], batch_size: int) -> Iterator[Row]:
        keys = ["id", *columns]
        # Named cursors are server-side: only one batch is held client-side
        cursor = self.connection.cursor(name=f"sync_diff_{next(_cursor_ids)}")
        cursor.itersize = batch_size
        try:
            with trace_operation(
                "stream_live_rows", kind=trace.SpanKind.CLIENT, table=table_name
            ):
                cursor.execute(build_select_rows(table_name, columns))
                while True:
                    batch = cursor.fetchmany(batch_size)
                    if not batch:
                        break
                    for record in batch:
                        yield dict(zip(keys, record))
        finally:
            cursor.close()

    def index_exists(self, index_name: str) -> bool:
        return self._fetchone(
            "SELECT 1 FROM pg_indexes WHERE schemaname = %s AND indexname = %s",
            (self.schema, index_name),
        ) is not None

    def constraint_exists(self, constraint_name: str) -> bool:
        return self._fetchone(
            "SELECT 1 FROM pg_constraint WHERE conname = %s", (constraint_name,)
        ) is not None

    def create_table(self, table_name: str, columns: Sequence[TargetColumn]) -> None:
        self._execute(build_create_table(table_name, columns))

    def drop_table(self, table_name: str) -> None:
        self._execute(f"DROP TABLE IF EXISTS {quote_identifier(table_name)} CASCADE")

    def comment_on_table(self, table_name: str, comment: str) -> None:
        # psycopg2 interpolates client-side, so utility statements take parameters too
        self._execute(f"COMMENT ON TABLE {quote_identifier(table_name)} IS %s", (comment,))

    def comment_on_column(self, table_name: str, column_name: str, comment: str) -> None:
        self._execute(
            f"COMMENT ON COLUMN {quote_identifier(table_name)}.{quote_identifier(column_name)} IS %s",
            (comment,),
        )

    def create_unique_index(self, index_name: str, table_name: str, column_name: str) -> None:
        self._execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {quote_identifier(index_name)} "
            f"ON {quote_identifier(table_name)} ({quote_identifier(column_name)})"
        )

    def add_foreign_key(self, relationship: Relationship) -> None:
        self._execute(build_add_foreign_key(relationship))

    def insert_rows(
        self, table_name: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> list[int]:
        if not rows:
            return []
        params = [value for row in rows for value in row]
        with self.connection.cursor() as cursor:
            cursor.execute(build_insert(table_name, columns, len(rows)), params)
            return [record[0] for record in cursor.fetchall()]

    def update_row(
        self, table_name: str, columns: Sequence[str], values: Sequence[Any], row_id: int
    ) -> None:
        self._execute(build_update(table_name, columns), [*values, row_id])

    def begin(self) -> None:
        # psycopg2 opens the transaction implicitly on the first statement
        if self.connection.autocommit:
            self.connection.autocommit = False

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        if not self.connection.closed:
            self.connection.rollback()

    @contextmanager
    def savepoint(self, name: str):
        quoted = quote_identifier(name)
        self._execute(f"SAVEPOINT {quoted}")
        try:
            yield
        except Exception:
            self._execute(f"ROLLBACK TO SAVEPOINT {quoted}")
            raise
        else:
            self._execute(f"RELEASE SAVEPOINT {quoted}")

    def set_autocommit(self, enabled: bool) -> None:
        self.connection.autocommit = enabled

    def close(self) -> None:
        if not self.connection.closed:
            self.connection.close()
