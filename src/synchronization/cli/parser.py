"""
Command-line argument parser for the sheet-sync tool.
"""

import argparse

from ..models import Strategy


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser with its ``run`` and ``report`` subcommands.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="sheet-sync",
        description="Synchronize spreadsheet-derived rows into PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Incremental sync of schema version v3 into $POSTGRES_URL
  sheet-sync run --schema-version v3

  # Replace every table wholesale and keep a JSON copy of the result
  sheet-sync run --schema-version v3 --strategy overwrite --format json --output result.json

  # Take the connection target from Vault
  sheet-sync run --schema-version v3 --use-vault

  # Re-render a saved result
  sheet-sync report --input result.json --format console
        """,
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON documents",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Synchronize one schema version")
    run_parser.add_argument(
        "--schema-version",
        required=True,
        help="Schema mapping version to load",
    )
    run_parser.add_argument(
        "--strategy",
        choices=[s.value for s in Strategy],
        help="Update strategy (default: DB_UPDATE_STRATEGY or incremental)",
    )
    run_parser.add_argument(
        "--connection-target",
        help="PostgreSQL URL or DSN (default: POSTGRES_URL)",
    )
    run_parser.add_argument(
        "--use-vault",
        action="store_true",
        help="Read the connection target from Vault (VAULT_ADDR, VAULT_TOKEN)",
    )
    run_parser.add_argument(
        "--vault-path",
        default="secret/database/postgresql",
        help="Vault KV v2 secret holding the connection details",
    )
    run_parser.add_argument(
        "--data-root",
        help="Directory with schema/ and cache/ (default: SYNC_DATA_ROOT or ./output)",
    )
    run_parser.add_argument(
        "--config",
        help="JSON file overriding masking rules and unique keys",
    )
    run_parser.add_argument(
        "--format",
        choices=["console", "json", "csv"],
        default="console",
        help="Result format (default: console)",
    )
    run_parser.add_argument(
        "--output",
        help="Write the result to this file instead of stdout",
    )
    run_parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while running",
    )
    run_parser.add_argument(
        "--otlp-endpoint",
        help="Send traces to this OTLP gRPC collector (default: OTLP_ENDPOINT)",
    )

    report_parser = subparsers.add_parser("report", help="Render a saved sync result")
    report_parser.add_argument(
        "--input",
        required=True,
        help="JSON result written by 'run --format json'",
    )
    report_parser.add_argument(
        "--format",
        choices=["console", "json", "csv"],
        default="console",
        help="Output format (default: console)",
    )
    report_parser.add_argument(
        "--output",
        help="Output file (required for csv)",
    )

    return parser
