"""Unit tests for runtime settings and configuration loading."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.app.runtime.config.config_data import (
    ConfigData,
    DatabaseConfig,
    RedisConfig,
    RememberConfig,
)
from src.app.runtime.config.config_template import (
    load_default_config,
    load_templated_yaml,
    substitute_env_vars,
)
from src.app.runtime.settings import EnvironmentVariables

PROJECT_ROOT = Path(__file__).resolve().parents[3]

MINIMAL_YAML = """
config:
  app:
    environment: ${APP_ENVIRONMENT:-development}
  database:
    url: ${DATABASE_URL:-sqlite:///./database.db}
  remember:
    days: ${REMEMBER_ME_DAYS:-30}
    timezone: ${REMEMBER_ME_TIMEZONE:-UTC}
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "config.yaml"
    path.write_text(MINIMAL_YAML)
    return path


class TestEnvironmentVariables:
    """Tests for the EnvironmentVariables class."""

    def test_default_values(self, tmp_path, monkeypatch):
        """Should have sensible defaults when no environment variables are set."""
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {}, clear=True):
            env_vars = EnvironmentVariables()

            assert env_vars.environment == "development"
            assert env_vars.config_file == Path("config.yaml")
            assert env_vars.env_prefix == "DEVELOPMENT_"

    def test_environment_variable_loading(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        test_env = {"APP_ENVIRONMENT": "production", "APP_CONFIG_FILE": "/etc/gw.yaml"}

        with patch.dict(os.environ, test_env, clear=True):
            env_vars = EnvironmentVariables()

            assert env_vars.environment == "production"
            assert env_vars.config_file == Path("/etc/gw.yaml")
            assert env_vars.env_prefix == "PRODUCTION_"


class TestSubstituteEnvVars:
    """${VAR} placeholder expansion."""

    def test_default_used_when_unset(self):
        with patch.dict(os.environ, {}, clear=True):
            assert substitute_env_vars("days: ${DAYS:-30}") == "days: 30"

    def test_value_from_environment(self):
        with patch.dict(os.environ, {"DAYS": "7"}, clear=True):
            assert substitute_env_vars("days: ${DAYS:-30}") == "days: 7"

    def test_required_variable_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="DB_URL"):
                substitute_env_vars("url: ${DB_URL}")

    def test_required_variable_custom_message(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="set the database"):
                substitute_env_vars("url: ${DB_URL:?set the database}")


class TestLoadTemplatedYaml:
    """Loading config.yaml into ConfigData."""

    def test_defaults(self, config_file):
        with patch.dict(os.environ, {}, clear=True):
            config = load_templated_yaml(config_file)

        assert config.remember.days == 30
        assert config.remember.timezone == "UTC"
        assert config.database.backend == "sqlite"

    def test_environment_values(self, config_file):
        env = {"REMEMBER_ME_DAYS": "7", "REMEMBER_ME_TIMEZONE": "Europe/Berlin"}
        with patch.dict(os.environ, env, clear=True):
            config = load_templated_yaml(config_file)

        assert config.remember.days == 7
        assert config.remember.timezone == "Europe/Berlin"

    def test_environment_specific_override(self, config_file):
        env = {
            "APP_ENVIRONMENT": "production",
            "DATABASE_URL": "sqlite:///dev.db",
            "PRODUCTION_DATABASE_URL": "mysql+pymysql://gw@db:3306/gateway",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_templated_yaml(config_file)

        assert config.app.environment == "production"
        assert config.database.backend == "mysql"

    def test_invalid_timezone(self, config_file):
        with patch.dict(os.environ, {"REMEMBER_ME_TIMEZONE": "Mars/Olympus"}, clear=True):
            with pytest.raises(ValueError, match="Invalid configuration"):
                load_templated_yaml(config_file)

    def test_missing_file_falls_back_to_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {"APP_CONFIG_FILE": "absent.yaml"}, clear=True):
            config = load_default_config()

        assert config == ConfigData()

    def test_shipped_config_loads(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {}, clear=True):
            config = load_templated_yaml(PROJECT_ROOT / "config.yaml")

        assert config.app.port == 3030
        assert config.remember.enabled is True
        assert config.remember.cookie_name == "remember_token"
        assert config.database.pool_size == 5
        assert config.logging.file is None


class TestConfigModels:
    """Validation and derived values."""

    def test_remember_defaults(self):
        remember = RememberConfig()

        assert remember.days == 30
        assert remember.timezone == "UTC"
        assert remember.cookie_name == "remember_token"

    def test_remember_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            RememberConfig(days=0)
        with pytest.raises(ValidationError):
            RememberConfig(timezone="Not/AZone")

    def test_database_password_from_env_var(self):
        database = DatabaseConfig(
            url="mysql+pymysql://gw@db:3306/gateway", password_env_var="GW_DB_PASSWORD"
        )
        with patch.dict(os.environ, {"GW_DB_PASSWORD": "s3cret"}):
            assert (
                database.connection_string == "mysql+pymysql://gw:s3cret@db:3306/gateway"
            )

    def test_database_password_file_wins(self, tmp_path):
        secret = tmp_path / "db_password"
        secret.write_text("from-file\n")
        database = DatabaseConfig(
            url="mysql+pymysql://gw:inline@db/gateway",
            password_file=str(secret),
            password_env_var="GW_DB_PASSWORD",
        )
        with patch.dict(os.environ, {"GW_DB_PASSWORD": "from-env"}):
            assert database.password == "from-file"

    def test_sqlite_connection_string_unchanged(self):
        database = DatabaseConfig(url="sqlite:///./database.db")

        assert database.connection_string == "sqlite:///./database.db"

    def test_redis_password_injected(self):
        redis = RedisConfig(url="redis://cache:6379/0", password="pw")

        assert redis.connection_string == "redis://:pw@cache:6379/0"
