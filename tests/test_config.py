"""
Tests for settings loading and logging setup.
"""

import logging
import os

import pytest

from app.config import Environment, Settings, load_settings
from app.exceptions import ConfigError, ParsingConfigError
from app.logging_setup import configure_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep PRODUCTDB_ variables of the developer's shell out of the tests"""
    for key in list(os.environ):
        if key.startswith("PRODUCTDB_"):
            monkeypatch.delenv(key)


def test_defaults():
    settings = load_settings()

    assert settings.environment == Environment.DEVELOPMENT
    assert settings.postgres.host == "localhost"
    assert settings.postgres.port == 5432
    assert settings.postgres.max_connections == 5
    assert settings.max_query_limit == 100


def test_yaml_config(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "environment: Production\n"
        "log_level: debug\n"
        "postgres:\n"
        "  host: db.internal\n"
        "  port: 6543\n"
        "  user: product_db\n"
        "  password: s3cr3t\n"
        "  max_connections: 12\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.is_production()
    assert settings.log_level == "DEBUG"
    assert settings.postgres.port == 6543
    assert settings.postgres.max_connections == 12
    assert settings.postgres.password.get_secret_value() == "s3cr3t"


def test_password_is_masked(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("postgres:\n  password: s3cr3t\n", encoding="utf-8")

    postgres = load_settings(config).postgres

    assert "s3cr3t" not in str(postgres)
    assert "s3cr3t" not in repr(postgres.password)
    assert postgres.url().password == "s3cr3t"
    assert "s3cr3t" not in str(postgres.url())


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("PRODUCTDB_POSTGRES__HOST", "pg.example.org")
    monkeypatch.setenv("PRODUCTDB_MAX_QUERY_LIMIT", "50")

    settings = Settings()

    assert settings.postgres.host == "pg.example.org"
    assert settings.max_query_limit == 50


def test_url_uses_psycopg2_driver():
    url = Settings().postgres.url()

    assert url.drivername == "postgresql+psycopg2"
    assert url.database == "postgres"


def test_missing_file_is_parsing_error(tmp_path):
    with pytest.raises(ParsingConfigError) as exc:
        load_settings(tmp_path / "missing.yaml")

    assert exc.value.code == "parsing_config_error"


def test_invalid_yaml_is_parsing_error(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("postgres: [unclosed\n", encoding="utf-8")

    with pytest.raises(ParsingConfigError):
        load_settings(config)


def test_non_mapping_yaml_is_parsing_error(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ParsingConfigError):
        load_settings(config)


@pytest.mark.parametrize(
    "content",
    [
        "max_query_limit: 500\n",
        "log_level: loud\n",
        "postgres:\n  port: 70000\n",
        "postgres:\n  max_connections: 0\n",
    ],
)
def test_invalid_values_are_config_errors(tmp_path, content):
    config = tmp_path / "config.yaml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError) as exc:
        load_settings(config)

    assert exc.value.details["errors"]


def test_configure_logging_levels():
    configure_logging(Settings(log_level="DEBUG"))
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO

    configure_logging(Settings(log_level="WARNING"))
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_log_summary_masks_password(caplog):
    settings = Settings(postgres={"password": "s3cr3t"})

    with caplog.at_level(logging.INFO, logger="productdb.config"):
        settings.log_summary()

    assert "**********" in caplog.text
    assert "s3cr3t" not in caplog.text
