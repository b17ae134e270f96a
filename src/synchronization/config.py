"""
Process-level settings of the synchronization engine.

``SyncSettings`` is built once at startup, usually with ``from_env()``, and
handed explicitly to the exporter. Masking rules and dimension-table unique
keys live here rather than in module globals so tests and callers can swap
them without patching.

Environment variables:
    POSTGRES_URL: Default connection target
    DB_UPDATE_STRATEGY: Default strategy, ``incremental`` or ``overwrite``
    SYNC_STATEMENT_TIMEOUT_MS: Server statement timeout (default 60000)
    SYNC_INSERT_BATCH_SIZE: Rows per INSERT statement (default 500)
    SYNC_CURSOR_BATCH_SIZE: Rows per server-side cursor fetch (default 10000)
    SYNC_DATA_ROOT: Directory holding schema mappings and cached rows
    SYNC_CONFIG_FILE: JSON file overriding ``masking`` and ``uniqueKeys``
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from transformation.transformers.masking import MaskingConfig

from .errors import ConfigurationError
from .models import Strategy

logger = logging.getLogger(__name__)

DEFAULT_MASKING_RULES: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "contract_creation_log": {"resident_name": "name"},
    "resident_id_document_list": {
        "resident_name": "name",
        "id_number": "id_card",
        "mobile": "phone",
    },
    "tenant_analysis_report": {"resident_name": "name"},
    "arrival_departure_weekly": {
        "resident_name": "name",
        "mobile": "phone",
        "id_number": "id_card",
    },
    "viewing_appointment_list": {
        "resident_name": "name",
        "mobile": "phone",
    },
})

# Natural keys of dimension tables; foreign keys can only target unique columns
DEFAULT_UNIQUE_KEYS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "dim_room_type": ("room_code",),
    "dim_status_map": ("status", "status_desc"),
    "dim_work_order_items": ("item_code", "item_desc"),
    "dim_work_locations": ("location_code", "location_desc"),
    "room_details": ("room_number",),
})


def _freeze_unique_keys(keys: Mapping[str, Any]) -> Mapping[str, tuple[str, ...]]:
    frozen = {}
    for table, columns in keys.items():
        if isinstance(columns, str):
            columns = [columns]
        frozen[table] = tuple(columns)
    return MappingProxyType(frozen)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class SyncSettings:
    connection_target: str | None = None
    default_strategy: Strategy = Strategy.INCREMENTAL
    statement_timeout_ms: int = 60000
    insert_batch_size: int = 500
    cursor_batch_size: int = 10000
    mismatch_ratio: float = 0.8
    data_root: Path = Path("output")
    masking: MaskingConfig = field(default_factory=lambda: MaskingConfig(DEFAULT_MASKING_RULES))
    unique_keys: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: _freeze_unique_keys(DEFAULT_UNIQUE_KEYS)
    )

    def __post_init__(self):
        if self.insert_batch_size <= 0 or self.cursor_batch_size <= 0:
            raise ConfigurationError("Batch sizes must be positive")
        if not 0 < self.mismatch_ratio <= 1:
            raise ConfigurationError("mismatch_ratio must be in (0, 1]")

    def unique_keys_for(self, table_name: str) -> tuple[str, ...]:
        return self.unique_keys.get(table_name, ())

    def with_overrides(self, **changes: Any) -> "SyncSettings":
        """Copy with the non-None ``changes`` applied."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    @classmethod
    def from_env(cls, config_file: str | None = None) -> "SyncSettings":
        """
        Build settings from environment variables and an optional JSON file.

        Args:
            config_file: Overrides SYNC_CONFIG_FILE when given

        Raises:
            ConfigurationError: If a value is malformed
        """
        settings = cls(
            connection_target=os.getenv("POSTGRES_URL") or None,
            default_strategy=Strategy.parse(os.getenv("DB_UPDATE_STRATEGY") or "incremental"),
            statement_timeout_ms=_env_int("SYNC_STATEMENT_TIMEOUT_MS", 60000),
            insert_batch_size=_env_int("SYNC_INSERT_BATCH_SIZE", 500),
            cursor_batch_size=_env_int("SYNC_CURSOR_BATCH_SIZE", 10000),
            data_root=Path(os.getenv("SYNC_DATA_ROOT", "output")),
        )

        config_file = config_file or os.getenv("SYNC_CONFIG_FILE")
        if config_file:
            settings = settings.merge_file(Path(config_file))
        return settings

    def merge_file(self, path: Path) -> "SyncSettings":
        """
        Replace masking rules and unique keys with those found in ``path``.

        The file is a JSON object with optional ``masking``
        (``{table: {column: kind}}``) and ``uniqueKeys`` (``{table: [columns]}``)
        members. Members that are absent keep their current value.
        """
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {path}") from None
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        changes: dict[str, Any] = {}
        if "masking" in document:
            try:
                changes["masking"] = MaskingConfig(document["masking"])
            except (ValueError, AttributeError) as e:
                raise ConfigurationError(f"Invalid masking rules in {path}: {e}") from e
        if "uniqueKeys" in document:
            changes["unique_keys"] = _freeze_unique_keys(document["uniqueKeys"])

        logger.info(f"Loaded settings overrides from {path}: {', '.join(changes) or 'none'}")
        return replace(self, **changes)
