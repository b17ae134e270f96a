"""
Unit tests for CLI module

Tests for the command-line interface functionality including
argument parsing, connection target resolution, and command execution.
"""

import argparse
import json
import logging
from unittest.mock import patch

import pytest
import requests

from synchronization.cli import (
    cmd_report,
    cmd_run,
    configure_logging,
    create_parser,
    emit_result,
    main,
    resolve_connection_target,
)
from synchronization.config import SyncSettings
from synchronization.errors import ConfigurationError
from synchronization.models import (
    ErrorType,
    Strategy,
    SyncResult,
    SyncStats,
    TableSyncDetail,
)
from synchronization.report import export_result_json


def run_args(**overrides):
    values = {
        "command": "run",
        "schema_version": "v1",
        "strategy": None,
        "connection_target": None,
        "use_vault": False,
        "vault_path": "secret/database/postgresql",
        "data_root": None,
        "config": None,
        "format": "console",
        "output": None,
        "metrics_port": None,
        "otlp_endpoint": None,
        "log_level": None,
        "log_json": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.fixture
def ok_result():
    return SyncResult(
        success=True,
        stats=SyncStats(tables=1, rows=3, relationships=0, strategy="incremental"),
        details_report=[TableSyncDetail("tenants", 2, 1, [5, 6], [1])],
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    """Tests for create_parser"""

    def test_run_arguments(self):
        args = create_parser().parse_args([
            "--log-level", "DEBUG",
            "run",
            "--schema-version", "v3",
            "--strategy", "overwrite",
            "--format", "json",
            "--metrics-port", "9091",
        ])

        assert args.command == "run"
        assert args.schema_version == "v3"
        assert args.strategy == "overwrite"
        assert args.format == "json"
        assert args.metrics_port == 9091
        assert args.log_level == "DEBUG"
        assert args.vault_path == "secret/database/postgresql"

    def test_run_requires_schema_version(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["run"])

    def test_unknown_strategy_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["run", "--schema-version", "v1", "--strategy", "append"])

    def test_report_arguments(self):
        args = create_parser().parse_args(["report", "--input", "result.json", "--format", "csv", "--output", "r.csv"])

        assert args.command == "report"
        assert args.input == "result.json"
        assert args.output == "r.csv"


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_flag_level(self, restore_root_logger):
        configure_logging(run_args(log_level="WARNING"))

        assert logging.getLogger().level == logging.WARNING

    def test_env_fallback(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        configure_logging(run_args())

        assert logging.getLogger().level == logging.ERROR


class TestResolveConnectionTarget:
    """Tests for resolve_connection_target"""

    def test_flag_wins(self):
        settings = SyncSettings(connection_target="postgresql://settings/db")

        assert resolve_connection_target(
            run_args(connection_target="postgresql://flag/db", use_vault=True), settings
        ) == "postgresql://flag/db"

    @patch("synchronization.cli.credentials.VaultClient")
    def test_vault(self, mock_vault_class):
        mock_vault_class.return_value.get_connection_target.return_value = "postgresql://vault/db"

        target = resolve_connection_target(run_args(use_vault=True, vault_path="secret/sync"), SyncSettings())

        assert target == "postgresql://vault/db"
        mock_vault_class.return_value.get_connection_target.assert_called_once_with("secret/sync")

    @pytest.mark.parametrize("error", [ValueError("Secret not found"), requests.ConnectionError("refused")])
    @patch("synchronization.cli.credentials.VaultClient")
    def test_vault_failure(self, mock_vault_class, error):
        mock_vault_class.return_value.get_connection_target.side_effect = error

        with pytest.raises(ConfigurationError, match="Vault"):
            resolve_connection_target(run_args(use_vault=True), SyncSettings())

    def test_settings_fallback(self):
        settings = SyncSettings(connection_target="postgresql://settings/db")

        assert resolve_connection_target(run_args(), settings) == "postgresql://settings/db"


class TestCmdRun:
    """Tests for cmd_run"""

    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_success(self, mock_exporter_class, ok_result, capsys, monkeypatch, tmp_path):
        monkeypatch.setenv("POSTGRES_URL", "postgresql://env/db")
        mock_exporter_class.return_value.sync.return_value = ok_result

        exit_code = cmd_run(run_args(data_root=str(tmp_path), strategy="overwrite"))

        assert exit_code == 0
        request = mock_exporter_class.return_value.sync.call_args[0][0]
        assert request.schema_version == "v1"
        assert request.strategy is Strategy.OVERWRITE
        assert request.connection_target == "postgresql://env/db"
        settings = mock_exporter_class.call_args[0][0]
        assert settings.data_root == tmp_path
        assert "SYNC REPORT" in capsys.readouterr().out

    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_failure_exit_code(self, mock_exporter_class, capsys):
        mock_exporter_class.return_value.sync.return_value = SyncResult.failure(
            "Schema mapping not found", ErrorType.LOAD_ERROR
        )

        exit_code = cmd_run(run_args(format="json"))

        assert exit_code == 1
        assert json.loads(capsys.readouterr().out)["errorType"] == "LOAD_ERROR"

    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_json_output_file(self, mock_exporter_class, ok_result, tmp_path):
        mock_exporter_class.return_value.sync.return_value = ok_result
        output = tmp_path / "result.json"

        assert cmd_run(run_args(format="json", output=str(output))) == 0
        assert json.loads(output.read_text(encoding="utf-8")) == ok_result.to_dict()

    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_bad_config_file(self, mock_exporter_class, tmp_path):
        config = tmp_path / "sync.json"
        config.write_text("{broken", encoding="utf-8")

        assert cmd_run(run_args(config=str(config))) == 1
        mock_exporter_class.assert_not_called()

    @patch("synchronization.cli.commands.shutdown_tracing")
    @patch("synchronization.cli.commands.initialize_tracing")
    @patch("synchronization.cli.commands.MetricsPublisher")
    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_observability_flags(
        self, mock_exporter_class, mock_publisher_class, mock_init_tracing, mock_shutdown_tracing, ok_result
    ):
        mock_exporter_class.return_value.sync.return_value = ok_result

        cmd_run(run_args(metrics_port=9100, otlp_endpoint="localhost:4317"))

        mock_publisher_class.assert_called_once_with(port=9100)
        mock_publisher_class.return_value.start.assert_called_once()
        mock_init_tracing.assert_called_once_with(otlp_endpoint="localhost:4317")
        mock_shutdown_tracing.assert_called_once()

    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_csv_requires_output(self, mock_exporter_class, ok_result):
        """Test a csv run without --output fails before any data is synced"""
        mock_exporter_class.return_value.sync.return_value = ok_result

        assert cmd_run(run_args(format="csv")) == 1
        mock_exporter_class.return_value.sync.assert_not_called()

    @patch("synchronization.cli.commands.TransactionalExporter")
    def test_csv_with_output(self, mock_exporter_class, ok_result, tmp_path):
        mock_exporter_class.return_value.sync.return_value = ok_result
        output = tmp_path / "result.csv"

        assert cmd_run(run_args(format="csv", output=str(output))) == 0
        assert "tenants" in output.read_text(encoding="utf-8")


class TestCmdReport:
    """Tests for cmd_report"""

    def test_console(self, ok_result, tmp_path, capsys):
        path = tmp_path / "result.json"
        export_result_json(ok_result, path)

        exit_code = cmd_report(argparse.Namespace(input=str(path), format="console", output=None))

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "Table: tenants" in out
        assert "Inserted: 2 [5, 6]" in out

    def test_csv(self, ok_result, tmp_path):
        path = tmp_path / "result.json"
        export_result_json(ok_result, path)
        output = tmp_path / "result.csv"

        assert cmd_report(argparse.Namespace(input=str(path), format="csv", output=str(output))) == 0
        assert "tenants" in output.read_text(encoding="utf-8")

    def test_missing_input(self, tmp_path):
        args = argparse.Namespace(input=str(tmp_path / "absent.json"), format="console", output=None)

        assert cmd_report(args) == 1


class TestMain:
    """Tests for main"""

    def test_no_command(self, restore_root_logger):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2

    @patch("synchronization.cli.dispatch", return_value=0)
    def test_dispatches(self, mock_dispatch, restore_root_logger):
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--schema-version", "v1"])

        assert exc_info.value.code == 0
        assert mock_dispatch.call_args[0][0].schema_version == "v1"

    def test_emit_console_to_file(self, ok_result, tmp_path):
        output = tmp_path / "report.txt"

        emit_result(ok_result, "console", str(output))

        assert "SYNC REPORT" in output.read_text(encoding="utf-8")


def test_report_command_is_registered():
    """Test both subcommands are reachable from the parser"""
    parser = create_parser()
    subparsers = next(a for a in parser._actions if isinstance(a, argparse._SubParsersAction))

    assert set(subparsers.choices) == {"run", "report"}
