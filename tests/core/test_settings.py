"""Tests for SqlwaveSettings and the settings cache."""

import pytest
from pydantic import ValidationError

from sqlwave.core.settings import SqlwaveSettings, clear_settings_cache, get_settings


class TestSqlwaveSettings:
    def test_defaults(self):
        settings = SqlwaveSettings()
        assert settings.database == "sqlwave.db"
        assert settings.dialect == "sqlite"
        assert settings.root == "migrations/"
        assert settings.table_name == "migrations"
        assert settings.log_level == "INFO"
        assert settings.json_logs is None

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SQLWAVE_ROOT", "db/migrations")
        monkeypatch.setenv("SQLWAVE_TABLE_NAME", "schema_history")
        monkeypatch.setenv("SQLWAVE_LOG_FORMAT", "JSON")
        settings = SqlwaveSettings()
        assert settings.root == "db/migrations"
        assert settings.table_name == "schema_history"
        assert settings.log_format == "json"
        assert settings.json_logs is True

    def test_console_format(self):
        assert SqlwaveSettings(log_format="console").json_logs is False

    @pytest.mark.parametrize("name", ["bad-name", "1table", "drop table x", ""])
    def test_table_name_must_be_identifier(self, name):
        with pytest.raises(ValidationError):
            SqlwaveSettings(table_name=name)

    def test_log_format_validated(self):
        with pytest.raises(ValidationError):
            SqlwaveSettings(log_format="xml")


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("SQLWAVE_DATABASE", "other.db")
        assert get_settings() is first
        assert get_settings(_force_reload=True).database == "other.db"

    def test_clear_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
