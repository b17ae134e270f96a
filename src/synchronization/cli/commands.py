"""
CLI command implementations.

- run: synchronize one schema version
- report: re-render a saved result
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from utils.metrics import MetricsPublisher, SyncMetrics
from utils.tracing import initialize_tracing, shutdown_tracing

from ..config import SyncSettings
from ..errors import ConfigurationError
from ..exporter import TransactionalExporter
from ..loader import JsonRowSource, SchemaLoader
from ..models import Strategy, SyncRequest, SyncResult
from ..report import (
    export_result_csv,
    export_result_json,
    format_result_console,
    load_result_json,
)
from .credentials import resolve_connection_target

logger = logging.getLogger(__name__)


def check_output_args(fmt: str, output: str | None) -> None:
    """Reject output flag combinations that cannot be honoured."""
    if fmt == "csv" and not output:
        raise ConfigurationError("--output is required for csv format")


def emit_result(result: SyncResult, fmt: str, output: str | None) -> None:
    """Write ``result`` in ``fmt`` to ``output``, or to stdout."""
    check_output_args(fmt, output)
    if fmt == "csv":
        export_result_csv(result, output)
        logger.info(f"Result exported to {output}")
    elif fmt == "json":
        if output:
            export_result_json(result, output)
            logger.info(f"Result exported to {output}")
        else:
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    else:
        text = format_result_console(result)
        if output:
            Path(output).write_text(text + "\n", encoding="utf-8")
            logger.info(f"Result written to {output}")
        else:
            print(text)


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run a synchronization

    Returns:
        Process exit code: 0 on success, 1 otherwise
    """
    try:
        # Output flags are checked before anything is written
        check_output_args(args.format, args.output)
        settings = SyncSettings.from_env(config_file=args.config)
        settings = settings.with_overrides(
            data_root=Path(args.data_root) if args.data_root else None,
        )
        target = resolve_connection_target(args, settings)
        strategy = Strategy.parse(args.strategy) if args.strategy else None
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    if args.metrics_port:
        MetricsPublisher(port=args.metrics_port).start()

    tracing_enabled = bool(args.otlp_endpoint)
    if tracing_enabled:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    loader = SchemaLoader(settings.data_root, JsonRowSource(settings.data_root))
    exporter = TransactionalExporter(settings, loader, metrics=SyncMetrics())

    try:
        result = exporter.sync(SyncRequest(
            schema_version=args.schema_version,
            connection_target=target,
            strategy=strategy,
        ))
        emit_result(result, args.format, args.output)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    finally:
        if tracing_enabled:
            shutdown_tracing()

    return 0 if result.success else 1


def cmd_report(args: argparse.Namespace) -> int:
    """Render a result saved by ``run --format json``."""
    logger.info(f"Loading sync result from {args.input}")

    try:
        result = load_result_json(args.input)
        emit_result(result, args.format, args.output)
    except (OSError, ValueError, KeyError, ConfigurationError) as e:
        logger.error(f"Failed to process result: {e}")
        return 1

    return 0


def dispatch(args: argparse.Namespace) -> int:
    if args.command == "run":
        return cmd_run(args)
    if args.command == "report":
        return cmd_report(args)
    print("No command given; see --help", file=sys.stderr)
    return 2
