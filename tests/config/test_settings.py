"""Tests for stock_config: defaults, YAML base values, environment overrides."""

import pytest

from stock_config import Settings, get_settings
from stock_config.schema import DEFAULT_DATABASE_URL


class TestDefaults:

    def test_empty_environment(self):
        settings = get_settings(env={})

        assert settings == Settings()
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.alert_days == 30
        assert settings.port == 3003
        assert settings.jwt_expires_in_seconds == 3600
        assert settings.auth_validate_url is None
        assert settings.uses_delegated_auth is False

    def test_settings_are_frozen(self):
        with pytest.raises(AttributeError):
            Settings().port = 1


class TestEnvironment:

    def test_overrides(self):
        settings = get_settings(
            env={
                "DATABASE_URL": "postgresql://u:p@db/stock",
                "ALERT_DAYS": "14",
                "JWT_SECRET": "s3cret",
                "AUTH_VALIDATE_URL": "https://auth.example/validate",
                "AUTH_USER": "vet",
                "AUTH_PASS": "pw",
                "PORT": "8080",
                "LOG_LEVEL": "debug",
                "SQL_ECHO": "true",
            }
        )

        assert settings.database_url == "postgresql://u:p@db/stock"
        assert settings.alert_days == 14
        assert settings.jwt_secret == "s3cret"
        assert settings.uses_delegated_auth is True
        assert settings.auth_demo_user == "vet"
        assert settings.auth_demo_pass == "pw"
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.sql_echo is True

    def test_blank_validate_url_means_local_auth(self):
        assert get_settings(env={"AUTH_VALIDATE_URL": "  "}).auth_validate_url is None

    def test_database_url_from_pg_parts(self):
        settings = get_settings(
            env={
                "PGHOST": "db.internal",
                "PGPORT": "5433",
                "PGUSER": "stock",
                "PGPASSWORD": "pw",
                "PGDATABASE": "vaccines",
            }
        )

        assert settings.database_url == "postgresql+psycopg2://stock:pw@db.internal:5433/vaccines"

    def test_database_url_from_db_parts(self):
        settings = get_settings(env={"DB_HOST": "h", "DB_USER": "u", "DB_NAME": "n"})

        assert settings.database_url == "postgresql+psycopg2://u@h/n"

    def test_database_url_beats_parts(self):
        settings = get_settings(env={"DATABASE_URL": "sqlite:///x.db", "PGHOST": "h"})

        assert settings.database_url == "sqlite:///x.db"

    @pytest.mark.parametrize(
        "env",
        [
            {"ALERT_DAYS": "soon"},
            {"ALERT_DAYS": "-1"},
            {"PORT": "0"},
            {"SQL_ECHO": "maybe"},
            {"LOG_LEVEL": "LOUD"},
            {"AUTH_VALIDATE_TIMEOUT": "0"},
        ],
    )
    def test_invalid_values_rejected(self, env):
        with pytest.raises(ValueError):
            get_settings(env=env)


class TestYamlFile:

    def test_yaml_supplies_base_values(self, tmp_path):
        path = tmp_path / "stock.yaml"
        path.write_text("alert_days: 7\nservice_name: vaccines\nport: 9000\n")

        settings = get_settings(env={"PORT": "9100"}, config_file=path)

        assert settings.alert_days == 7
        assert settings.service_name == "vaccines"
        assert settings.port == 9100

    def test_yaml_path_from_environment(self, tmp_path):
        path = tmp_path / "stock.yaml"
        path.write_text("alert_days: 3\n")

        settings = get_settings(env={"STOCK_CONFIG_FILE": str(path)})

        assert settings.alert_days == 3

    def test_yaml_database_url_beats_parts(self, tmp_path):
        path = tmp_path / "stock.yaml"
        path.write_text("database_url: sqlite:///from-yaml.db\n")

        settings = get_settings(env={"PGHOST": "h"}, config_file=path)

        assert settings.database_url == "sqlite:///from-yaml.db"

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "stock.yaml"
        path.write_text("alert_dayz: 3\n")

        with pytest.raises(ValueError, match="alert_dayz"):
            get_settings(env={}, config_file=path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "stock.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            get_settings(env={}, config_file=path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_settings(env={}, config_file=tmp_path / "absent.yaml")
