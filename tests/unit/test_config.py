"""
Unit tests for SyncSettings and strategy parsing
"""

import json

import pytest

from synchronization.config import DEFAULT_UNIQUE_KEYS, SyncSettings
from synchronization.errors import ConfigurationError
from synchronization.models import Strategy
from transformation.transformers.masking import MaskKind


class TestStrategy:
    """Test Strategy.parse"""

    @pytest.mark.parametrize("raw,expected", [
        ("incremental", Strategy.INCREMENTAL),
        (" OVERWRITE ", Strategy.OVERWRITE),
        (Strategy.OVERWRITE, Strategy.OVERWRITE),
    ])
    def test_parse(self, raw, expected):
        assert Strategy.parse(raw) is expected

    def test_unknown(self):
        with pytest.raises(ConfigurationError, match="Unknown update strategy"):
            Strategy.parse("merge")


class TestDefaults:
    """Test default settings"""

    def test_defaults(self):
        settings = SyncSettings()

        assert settings.connection_target is None
        assert settings.default_strategy is Strategy.INCREMENTAL
        assert settings.statement_timeout_ms == 60000
        assert settings.insert_batch_size == 500
        assert settings.cursor_batch_size == 10000

    def test_default_masking_rules(self):
        masking = SyncSettings().masking

        assert masking.kind_for("resident_id_document_list", "id_number") is MaskKind.ID_CARD
        assert masking.kind_for("viewing_appointment_list", "mobile") is MaskKind.PHONE
        assert masking.kind_for("room_details", "room_number") is None

    def test_default_unique_keys(self):
        settings = SyncSettings()

        assert settings.unique_keys_for("dim_status_map") == DEFAULT_UNIQUE_KEYS["dim_status_map"]
        assert settings.unique_keys_for("tenants") == ()

    def test_settings_are_frozen(self):
        with pytest.raises(AttributeError):
            SyncSettings().insert_batch_size = 1

    @pytest.mark.parametrize("changes", [
        {"insert_batch_size": 0},
        {"cursor_batch_size": -1},
        {"mismatch_ratio": 0},
        {"mismatch_ratio": 1.5},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(ConfigurationError):
            SyncSettings(**changes)

    def test_with_overrides_ignores_none(self):
        settings = SyncSettings(connection_target="postgresql://a/b")

        updated = settings.with_overrides(connection_target=None, insert_batch_size=10)

        assert updated.connection_target == "postgresql://a/b"
        assert updated.insert_batch_size == 10


class TestFromEnv:
    """Test SyncSettings.from_env"""

    def test_reads_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("POSTGRES_URL", "postgresql://sync@db/sync")
        monkeypatch.setenv("DB_UPDATE_STRATEGY", "overwrite")
        monkeypatch.setenv("SYNC_STATEMENT_TIMEOUT_MS", "1000")
        monkeypatch.setenv("SYNC_INSERT_BATCH_SIZE", "50")
        monkeypatch.setenv("SYNC_DATA_ROOT", str(tmp_path))

        settings = SyncSettings.from_env()

        assert settings.connection_target == "postgresql://sync@db/sync"
        assert settings.default_strategy is Strategy.OVERWRITE
        assert settings.statement_timeout_ms == 1000
        assert settings.insert_batch_size == 50
        assert settings.data_root == tmp_path

    def test_empty_url_is_none(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_URL", "")

        assert SyncSettings.from_env().connection_target is None

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("SYNC_CURSOR_BATCH_SIZE", "many")

        with pytest.raises(ConfigurationError, match="SYNC_CURSOR_BATCH_SIZE"):
            SyncSettings.from_env()

    def test_bad_strategy(self, monkeypatch):
        monkeypatch.setenv("DB_UPDATE_STRATEGY", "append")

        with pytest.raises(ConfigurationError):
            SyncSettings.from_env()


class TestConfigFile:
    """Test JSON overrides of masking rules and unique keys"""

    def test_overrides(self, tmp_path):
        path = tmp_path / "sync.json"
        path.write_text(json.dumps({
            "masking": {"tenants": {"name": "name"}},
            "uniqueKeys": {"dim_floor": "floor_code"},
        }), encoding="utf-8")

        settings = SyncSettings.from_env(config_file=str(path))

        assert settings.masking.to_dict() == {"tenants": {"name": "name"}}
        assert settings.unique_keys_for("dim_floor") == ("floor_code",)
        assert settings.unique_keys_for("dim_room_type") == ()

    def test_partial_file_keeps_defaults(self, tmp_path, monkeypatch):
        path = tmp_path / "sync.json"
        path.write_text(json.dumps({"uniqueKeys": {"dim_floor": ["floor_code"]}}), encoding="utf-8")
        monkeypatch.setenv("SYNC_CONFIG_FILE", str(path))

        settings = SyncSettings.from_env()

        assert settings.masking == SyncSettings().masking

    @pytest.mark.parametrize("content,message", [
        ("{broken", "not valid JSON"),
        ("[]", "JSON object"),
        ('{"masking": {"tenants": {"name": "blur"}}}', "Invalid masking rules"),
    ])
    def test_invalid_files(self, tmp_path, content, message):
        path = tmp_path / "sync.json"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError, match=message):
            SyncSettings().merge_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            SyncSettings().merge_file(tmp_path / "absent.json")
