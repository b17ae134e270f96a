"""
Loading of schema mappings and incoming rows.

A schema mapping document (``<data_root>/schema/<version>/table_schema.json``)
lists one node per logical table plus the intended relationships. Incoming
rows are produced upstream by the spreadsheet parsers and reach the engine
through a ``RowSource``.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

from utils.sql_safety import validate_sql_type
from utils.tracing import trace_function

from .errors import LoadError
from .models import (
    ColumnMapping,
    Relationship,
    Row,
    SchemaMapping,
    SyncPlan,
    TableBatch,
    TableMapping,
)

logger = logging.getLogger(__name__)

SCHEMA_FILE_NAME = "table_schema.json"
ROWS_FILE_NAME = "rows.json"

# Editor type picker order; numeric ``dataType`` values index into it
PG_TYPES = (
    "VARCHAR(255)",
    "TEXT",
    "INTEGER",
    "DECIMAL(18,2)",
    "BOOLEAN",
    "DATE",
    "TIMESTAMP",
    "BIGINT",
    "JSONB",
    "SERIAL",
)
DEFAULT_SQL_TYPE = PG_TYPES[0]


def _first(mapping: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return default


def _parse_sql_type(raw: Any) -> str:
    if isinstance(raw, bool) or raw is None:
        return DEFAULT_SQL_TYPE
    if isinstance(raw, int):
        return PG_TYPES[raw] if 0 <= raw < len(PG_TYPES) else DEFAULT_SQL_TYPE
    text = str(raw).strip()
    if text.isdigit():
        return _parse_sql_type(int(text))
    return text or DEFAULT_SQL_TYPE


def _parse_column(raw: Mapping[str, Any]) -> ColumnMapping:
    original_name = str(_first(raw, "originalName", "original", default=""))
    enabled = raw.get("enabled") is not False
    sql_type = _parse_sql_type(_first(raw, "sqlType", "dataType"))
    if enabled:
        try:
            sql_type = validate_sql_type(sql_type)
        except ValueError as e:
            raise LoadError(f"Column {original_name!r}: {e}") from None

    return ColumnMapping(
        original_name=original_name,
        db_field_name=str(_first(raw, "dbFieldName", "dbField", default="")).strip(),
        sql_type=sql_type,
        comment=str(_first(raw, "comment", default="") or original_name),
        enabled=enabled,
    )


def _parse_node(node: Mapping[str, Any]) -> TableMapping:
    data = node.get("data") if isinstance(node.get("data"), Mapping) else node
    table_name = str(_first(data, "tableName", default="")).strip()
    if not table_name:
        raise LoadError(f"Schema node {node.get('id', '?')!r} has no tableName")

    return TableMapping(
        table_name=table_name,
        original_name=str(_first(data, "originalName", default="")),
        table_remarks=str(_first(data, "tableRemarks", default="")),
        columns=tuple(_parse_column(column) for column in data.get("columns") or []),
    )


def _parse_relationship(raw: Mapping[str, Any]) -> Relationship:
    try:
        return Relationship(
            source_table=raw["sourceTable"],
            source_db_field=raw["sourceDbField"],
            target_table=raw["targetTable"],
            target_db_field=raw["targetDbField"],
        )
    except KeyError as e:
        raise LoadError(f"Relationship is missing {e.args[0]}: {raw}") from None


def parse_schema_mapping(document: Mapping[str, Any], version: str = "") -> SchemaMapping:
    """
    Build a SchemaMapping from a decoded mapping document.

    Raises:
        LoadError: If the document does not have the expected shape
    """
    if not isinstance(document, Mapping):
        raise LoadError("Schema mapping must be a JSON object")

    nodes = document.get("nodes")
    if not isinstance(nodes, list):
        raise LoadError("Schema mapping has no 'nodes' list")

    return SchemaMapping(
        version=version,
        tables=tuple(_parse_node(node) for node in nodes),
        relationships=tuple(
            _parse_relationship(rel) for rel in document.get("relationships") or []
        ),
    )


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise LoadError(f"{what} not found: {path}") from None
    except (OSError, json.JSONDecodeError) as e:
        raise LoadError(f"Cannot read {what} {path}: {e}") from e


def load_schema_mapping(path: Path, version: str = "") -> SchemaMapping:
    """Read and parse a mapping document from ``path``."""
    return parse_schema_mapping(_read_json(Path(path), "Schema mapping"), version)


class RowSource(ABC):
    """Supplier of incoming rows, grouped by logical table name."""

    @abstractmethod
    def load_rows(self, version: str) -> dict[str, list[Row]]:
        """
        Rows of every logical table for ``version``.

        Raises:
            LoadError: If the rows cannot be obtained
        """


class JsonRowSource(RowSource):
    """
    Rows cached as JSON by the parsing stage

    Reads ``<root>/cache/<version>/rows.json``, either
    ``{"tables": [{"tableName": ..., "rows": [...]}]}`` or
    ``{"tables": {"<table>": [...]}}``.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, version: str) -> Path:
        return self.root / "cache" / version / ROWS_FILE_NAME

    def load_rows(self, version: str) -> dict[str, list[Row]]:
        document = _read_json(self.path_for(version), "Row cache")
        tables = document.get("tables") if isinstance(document, Mapping) else None

        if isinstance(tables, Mapping):
            return {str(name): list(rows or []) for name, rows in tables.items()}
        if isinstance(tables, list):
            return {
                str(entry["tableName"]): list(entry.get("rows") or [])
                for entry in tables
                if isinstance(entry, Mapping) and entry.get("tableName")
            }
        raise LoadError(f"Row cache {self.path_for(version)} has no 'tables' member")


class InMemoryRowSource(RowSource):
    """Rows handed over directly by an embedding caller."""

    def __init__(self, rows_by_table: Mapping[str, list[Row]]):
        self.rows_by_table = {name: list(rows) for name, rows in rows_by_table.items()}

    def load_rows(self, version: str) -> dict[str, list[Row]]:
        return dict(self.rows_by_table)


def project_rows(rows: list[Row], original_names: list[str]) -> list[Row]:
    """Keep only the enabled source headers; blank strings become None."""
    projected = []
    for row in rows:
        projected.append({
            name: (None if row.get(name) == "" else row.get(name))
            for name in original_names
        })
    return projected


class SchemaLoader:
    """
    Joins a schema mapping with its incoming rows into a ``SyncPlan``

    Args:
        data_root: Directory containing ``schema/<version>/table_schema.json``
        row_source: Where incoming rows come from
    """

    def __init__(self, data_root: Path, row_source: RowSource):
        self.data_root = Path(data_root)
        self.row_source = row_source

    def schema_path(self, version: str) -> Path:
        return self.data_root / "schema" / version / SCHEMA_FILE_NAME

    @trace_function("load_sync_plan", component="loader")
    def load(self, version: str) -> SyncPlan:
        """
        Load the plan for ``version``.

        Tables with no enabled columns are skipped. Tables without incoming
        rows are synced with an empty batch.

        Raises:
            LoadError: If the mapping or rows are missing or malformed
        """
        if not version or "/" in version or ".." in version:
            raise LoadError(f"Invalid schema version: {version!r}")

        mapping = load_schema_mapping(self.schema_path(version), version)
        rows_by_table = self.row_source.load_rows(version)

        tables = []
        for table in mapping.tables:
            columns = table.enabled_columns()
            if not columns:
                logger.warning(f"Skipping {table.table_name}: no enabled columns")
                continue

            incoming = rows_by_table.get(table.table_name)
            if incoming is None:
                logger.warning(f"No incoming rows for {table.table_name}")
                incoming = []

            tables.append(TableBatch(
                table_name=table.table_name,
                columns=columns,
                rows=project_rows(incoming, [c.original_name for c in columns]),
                original_name=table.original_name,
                table_remarks=table.table_remarks,
            ))

        logger.info(
            f"Loaded schema {version}: {len(tables)} tables, "
            f"{len(mapping.relationships)} relationships"
        )
        return SyncPlan(
            schema_version=version,
            tables=tables,
            relationships=list(mapping.relationships),
        )
