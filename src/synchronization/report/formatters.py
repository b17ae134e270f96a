"""
Sync result formatting and export.

Results can be printed for a terminal, saved as JSON (the camelCase shape
returned to API callers) or flattened to one CSV row per table.
"""

import csv
import json
from pathlib import Path
from typing import Sequence

from ..models import SyncResult

# Console output lists at most this many ids per table
MAX_IDS_SHOWN = 10


def format_ids(ids: Sequence[int], limit: int = MAX_IDS_SHOWN) -> str:
    """
    Comma separated ids, abbreviated past ``limit``.

    Examples:
        >>> format_ids([1, 2, 3])
        '1, 2, 3'
        >>> format_ids(list(range(1, 13)), limit=3)
        '1, 2, 3 ... (12 total)'
    """
    if not ids:
        return "-"
    shown = ", ".join(str(i) for i in ids[:limit])
    if len(ids) > limit:
        return f"{shown} ... ({len(ids)} total)"
    return shown


def export_result_json(result: SyncResult, output_path: str | Path) -> None:
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False, default=str)


def load_result_json(input_path: str | Path) -> SyncResult:
    with open(input_path, encoding="utf-8") as f:
        return SyncResult.from_dict(json.load(f))


def export_result_csv(result: SyncResult, output_path: str | Path) -> None:
    """One row per table with insert/update counts and ids."""
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([
            "Table",
            "Strategy",
            "Insert Count",
            "Update Count",
            "Insert IDs",
            "Update IDs",
        ])
        for detail in result.details_report:
            writer.writerow([
                detail.table_name,
                result.stats.strategy,
                detail.insert_count,
                detail.update_count,
                " ".join(str(i) for i in detail.insert_ids),
                " ".join(str(i) for i in detail.update_ids),
            ])


def format_result_console(result: SyncResult) -> str:
    lines = []

    lines.append("=" * 80)
    lines.append("SYNC REPORT")
    lines.append("=" * 80)
    lines.append(f"Status: {'SUCCESS' if result.success else 'FAILED'}")
    lines.append(f"Strategy: {result.stats.strategy}")
    lines.append(f"Tables Changed: {result.stats.tables}")
    lines.append(f"Rows Written: {result.stats.rows:,}")
    lines.append(f"Relationships: {result.stats.relationships}")
    lines.append("")

    if not result.success:
        lines.append("ERROR")
        lines.append("-" * 80)
        error_type = result.error_type.value if result.error_type else "UNKNOWN"
        lines.append(f"{error_type}: {result.error}")
        if result.details is not None:
            detail = result.details
            lines.append(f"  Table: {detail.table_name}")
            lines.append(f"  Row: {detail.row_number}")
            lines.append(f"  Column: {detail.column_name} ({detail.target_type})")
            lines.append(f"  Value: {detail.invalid_value!r}")
        lines.append("")

    if result.details_report:
        lines.append("TABLES")
        lines.append("-" * 80)
        for detail in result.details_report:
            lines.append(f"Table: {detail.table_name}")
            lines.append(f"  Inserted: {detail.insert_count} [{format_ids(detail.insert_ids)}]")
            lines.append(f"  Updated: {detail.update_count} [{format_ids(detail.update_ids)}]")
        lines.append("")

    if result.foreign_key_failures:
        lines.append("FOREIGN KEYS NOT APPLIED")
        lines.append("-" * 80)
        for name in result.foreign_key_failures:
            lines.append(f"  {name}")
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)
