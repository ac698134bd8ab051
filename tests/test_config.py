from __future__ import annotations

import logging
from pathlib import Path

import pytest

from guardian_links.config import (
    LOG_FORMAT,
    ConfigurationError,
    Settings,
    configure_logging,
    load_settings,
)
from guardian_links.db.schema import STUDENT_GUARDIANS

_ENV_KEYS = (
    "GUARDIAN_LINKS_DATABASE_URL",
    "DATABASE_URL",
    "GUARDIAN_LINKS_SQLITE_PATH",
    "GUARDIAN_LINKS_LINKS_COLLECTION",
    "GUARDIAN_LINKS_LOG_LEVEL",
    "GUARDIAN_LINKS_SQL_ECHO",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove link settings from the environment, restoring them afterwards."""
    for key in _ENV_KEYS:
        # setenv first so the removal (and anything load_dotenv adds) is undone.
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)
    return monkeypatch


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})

    assert settings == Settings()
    assert settings.database_url is None
    assert settings.sqlite_path is None
    assert settings.links_collection == STUDENT_GUARDIANS
    assert settings.log_level == "INFO"
    assert settings.echo_sql is False


def test_reads_prefixed_values():
    settings = Settings.from_env(
        {
            "GUARDIAN_LINKS_SQLITE_PATH": " /tmp/links.db ",
            "GUARDIAN_LINKS_LINKS_COLLECTION": "guardian_links",
            "GUARDIAN_LINKS_LOG_LEVEL": "debug",
            "GUARDIAN_LINKS_SQL_ECHO": "yes",
        }
    )

    assert settings.sqlite_path == Path("/tmp/links.db")
    assert settings.links_collection == "guardian_links"
    assert settings.log_level == "DEBUG"
    assert settings.echo_sql is True


def test_database_url_falls_back_and_rewrites_postgres_scheme():
    settings = Settings.from_env({"DATABASE_URL": "postgres://user:pw@db:5432/school"})

    assert settings.database_url == "postgresql://user:pw@db:5432/school"


def test_prefixed_database_url_wins():
    settings = Settings.from_env(
        {
            "GUARDIAN_LINKS_DATABASE_URL": "sqlite:///links.db",
            "DATABASE_URL": "postgresql://db/other",
        }
    )

    assert settings.database_url == "sqlite:///links.db"


@pytest.mark.parametrize(
    "environ",
    [
        {"GUARDIAN_LINKS_DATABASE_URL": "sqlite:///a.db", "GUARDIAN_LINKS_SQLITE_PATH": "b.db"},
        {"GUARDIAN_LINKS_DATABASE_URL": "not a url"},
        {"GUARDIAN_LINKS_LOG_LEVEL": "chatty"},
        {"GUARDIAN_LINKS_SQL_ECHO": "sometimes"},
    ],
)
def test_invalid_settings_raise(environ):
    with pytest.raises(ConfigurationError):
        Settings.from_env(environ)


def test_load_settings_reads_dotenv(tmp_path: Path, clean_env):
    dotenv = tmp_path / ".env"
    dotenv.write_text(
        "GUARDIAN_LINKS_LOG_LEVEL=warning\nGUARDIAN_LINKS_LINKS_COLLECTION=links\n",
        encoding="utf-8",
    )

    settings = load_settings(dotenv)

    assert settings.log_level == "WARNING"
    assert settings.links_collection == "links"


def test_load_settings_finds_dotenv_from_working_directory(tmp_path: Path, clean_env):
    (tmp_path / ".env").write_text("GUARDIAN_LINKS_LOG_LEVEL=error\n", encoding="utf-8")
    nested = tmp_path / "jobs"
    nested.mkdir()
    clean_env.chdir(nested)

    assert load_settings().log_level == "ERROR"


def test_real_environment_overrides_dotenv(tmp_path: Path, clean_env):
    dotenv = tmp_path / ".env"
    dotenv.write_text("GUARDIAN_LINKS_LOG_LEVEL=warning\n", encoding="utf-8")
    clean_env.setenv("GUARDIAN_LINKS_LOG_LEVEL", "error")

    assert load_settings(dotenv).log_level == "ERROR"


def test_configure_logging_installs_root_handler(monkeypatch: pytest.MonkeyPatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging("DEBUG")

    assert calls == [{"level": "DEBUG", "format": LOG_FORMAT}]
