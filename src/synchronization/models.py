"""
Data model of a synchronization run.

Mapping types describe what the user authored; ``TargetColumn`` and
``TableBatch`` are what the engine works with once disabled columns are
dropped; result types are what a run reports back.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ConfigurationError

Row = dict[str, Any]


class Strategy(str, Enum):
    """How tables whose structure is unchanged are brought up to date."""

    INCREMENTAL = "incremental"
    OVERWRITE = "overwrite"

    @classmethod
    def parse(cls, value: "str | Strategy") -> "Strategy":
        if isinstance(value, Strategy):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown update strategy {value!r}; expected one of "
                f"{', '.join(s.value for s in cls)}"
            ) from None


@dataclass(frozen=True)
class TargetColumn:
    """An enabled column: database name, declared type, source header."""

    name: str
    sql_type: str
    original_name: str
    comment: str = ""


@dataclass(frozen=True)
class ColumnMapping:
    original_name: str
    db_field_name: str
    sql_type: str = "VARCHAR(255)"
    comment: str = ""
    enabled: bool = True

    def to_target(self) -> TargetColumn:
        return TargetColumn(
            name=self.db_field_name,
            sql_type=self.sql_type,
            original_name=self.original_name,
            comment=self.comment or self.original_name,
        )


@dataclass(frozen=True)
class TableMapping:
    table_name: str
    original_name: str = ""
    table_remarks: str = ""
    columns: tuple[ColumnMapping, ...] = ()

    def enabled_columns(self) -> list[TargetColumn]:
        return [column.to_target() for column in self.columns if column.enabled]


@dataclass(frozen=True)
class Relationship:
    """An intended foreign key from ``source_table`` to ``target_table``."""

    source_table: str
    source_db_field: str
    target_table: str
    target_db_field: str

    @property
    def constraint_name(self) -> str:
        return f"fk_{self.source_table}_{self.source_db_field}"

    def to_dict(self) -> dict[str, str]:
        return {
            "sourceTable": self.source_table,
            "sourceDbField": self.source_db_field,
            "targetTable": self.target_table,
            "targetDbField": self.target_db_field,
        }


@dataclass(frozen=True)
class SchemaMapping:
    version: str
    tables: tuple[TableMapping, ...] = ()
    relationships: tuple[Relationship, ...] = ()


@dataclass
class TableBatch:
    """One logical table ready to sync: its enabled columns and incoming rows."""

    table_name: str
    columns: list[TargetColumn]
    rows: list[Row]
    original_name: str = ""
    table_remarks: str = ""

    @property
    def comment(self) -> str:
        return self.table_remarks or self.original_name


@dataclass
class SyncPlan:
    """Everything a run needs from the load phase."""

    schema_version: str
    tables: list[TableBatch]
    relationships: list[Relationship] = field(default_factory=list)


@dataclass(frozen=True)
class RowUpdate:
    """Replace the live row ``id`` with ``data``; ``position`` is the 0-based incoming index."""

    id: int
    data: Row
    position: int | None = None


@dataclass
class DiffResult:
    is_new_table: bool = False
    is_schema_changed: bool = False
    to_insert: list[Row] = field(default_factory=list)
    to_update: list[RowUpdate] = field(default_factory=list)
    db_count: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.to_insert or self.to_update)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isNewTable": self.is_new_table,
            "isSchemaChanged": self.is_schema_changed,
            "toInsert": len(self.to_insert),
            "toUpdate": len(self.to_update),
            "dbCount": self.db_count,
        }


@dataclass(frozen=True)
class SyncRequest:
    """
    A request to synchronize one schema version.

    ``connection_target`` and ``strategy`` fall back to process settings
    when None.
    """

    schema_version: str
    connection_target: str | None = None
    strategy: Strategy | None = None


@dataclass
class TableSyncDetail:
    table_name: str
    insert_count: int = 0
    update_count: int = 0
    insert_ids: list[int] = field(default_factory=list)
    update_ids: list[int] = field(default_factory=list)
    action: str = "incremental"

    def to_dict(self) -> dict[str, Any]:
        return {
            "tableName": self.table_name,
            "insertCount": self.insert_count,
            "updateCount": self.update_count,
            "insertIds": list(self.insert_ids),
            "updateIds": list(self.update_ids),
        }


@dataclass
class SyncStats:
    tables: int = 0
    rows: int = 0
    relationships: int = 0
    strategy: str = Strategy.INCREMENTAL.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "tables": self.tables,
            "rows": self.rows,
            "relationships": self.relationships,
            "strategy": self.strategy,
        }


@dataclass
class ValidationErrorDetail:
    """Where an unrecoverable value was found and what was wrong with it."""

    table_name: str
    row_number: int
    column_name: str
    target_type: str
    invalid_value: Any
    message: str
    row_data: Row

    def to_dict(self) -> dict[str, Any]:
        return {
            "tableName": self.table_name,
            "rowNumber": self.row_number,
            "columnName": self.column_name,
            "targetType": self.target_type,
            "invalidValue": self.invalid_value,
            "message": self.message,
            "rowData": self.row_data,
        }


class ErrorType(str, Enum):
    LOAD_ERROR = "LOAD_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DB_ERROR = "DB_ERROR"


@dataclass
class SyncResult:
    """Outcome of one synchronization run."""

    success: bool
    stats: SyncStats = field(default_factory=SyncStats)
    details_report: list[TableSyncDetail] = field(default_factory=list)
    error: str | None = None
    error_type: ErrorType | None = None
    details: ValidationErrorDetail | None = None
    foreign_key_failures: list[str] = field(default_factory=list)

    @classmethod
    def failure(
        cls,
        error: str,
        error_type: ErrorType,
        details: ValidationErrorDetail | None = None,
        strategy: str = Strategy.INCREMENTAL.value,
    ) -> "SyncResult":
        return cls(
            success=False,
            stats=SyncStats(strategy=strategy),
            error=error,
            error_type=error_type,
            details=details,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "stats": self.stats.to_dict(),
            "detailsReport": [detail.to_dict() for detail in self.details_report],
        }
        if self.error is not None:
            result["error"] = self.error
        if self.error_type is not None:
            result["errorType"] = self.error_type.value
        if self.details is not None:
            result["details"] = self.details.to_dict()
        if self.foreign_key_failures:
            result["foreignKeyFailures"] = list(self.foreign_key_failures)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncResult":
        """Rebuild a result saved with ``to_dict``."""
        stats = data.get("stats") or {}
        details = data.get("details")
        error_type = data.get("errorType")
        return cls(
            success=bool(data.get("success")),
            stats=SyncStats(
                tables=stats.get("tables", 0),
                rows=stats.get("rows", 0),
                relationships=stats.get("relationships", 0),
                strategy=stats.get("strategy", Strategy.INCREMENTAL.value),
            ),
            details_report=[
                TableSyncDetail(
                    table_name=item["tableName"],
                    insert_count=item.get("insertCount", 0),
                    update_count=item.get("updateCount", 0),
                    insert_ids=list(item.get("insertIds", [])),
                    update_ids=list(item.get("updateIds", [])),
                )
                for item in data.get("detailsReport", [])
            ],
            error=data.get("error"),
            error_type=ErrorType(error_type) if error_type else None,
            details=ValidationErrorDetail(
                table_name=details["tableName"],
                row_number=details["rowNumber"],
                column_name=details["columnName"],
                target_type=details["targetType"],
                invalid_value=details.get("invalidValue"),
                message=details.get("message", ""),
                row_data=details.get("rowData", {}),
            ) if details else None,
            foreign_key_failures=list(data.get("foreignKeyFailures", [])),
        )
