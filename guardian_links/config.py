"""Environment-driven settings and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import find_dotenv, load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from guardian_links.db.schema import STUDENT_GUARDIANS

ENV_PREFIX = "GUARDIAN_LINKS_"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class ConfigurationError(ValueError):
    """Raised when settings read from the environment are invalid."""


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None = None
    sqlite_path: Path | None = None
    links_collection: str = STUDENT_GUARDIANS
    log_level: str = "INFO"
    echo_sql: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from ``environ`` (defaults to ``os.environ``).

        ``GUARDIAN_LINKS_DATABASE_URL`` falls back to ``DATABASE_URL``; a
        ``postgres://`` scheme is rewritten for SQLAlchemy.
        """
        env = os.environ if environ is None else environ

        database_url = (env.get(f"{ENV_PREFIX}DATABASE_URL") or env.get("DATABASE_URL") or "").strip()
        sqlite_path = (env.get(f"{ENV_PREFIX}SQLITE_PATH") or "").strip()
        if database_url and sqlite_path:
            raise ConfigurationError(
                f"Set either {ENV_PREFIX}DATABASE_URL or {ENV_PREFIX}SQLITE_PATH, not both."
            )
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        if database_url:
            try:
                make_url(database_url)
            except ArgumentError as exc:
                raise ConfigurationError(f"Invalid database URL: {database_url!r}") from exc

        log_level = (env.get(f"{ENV_PREFIX}LOG_LEVEL") or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Unknown log level: {log_level!r}")

        collection = (env.get(f"{ENV_PREFIX}LINKS_COLLECTION") or STUDENT_GUARDIANS).strip()

        return cls(
            database_url=database_url or None,
            sqlite_path=Path(sqlite_path) if sqlite_path else None,
            links_collection=collection or STUDENT_GUARDIANS,
            log_level=log_level,
            echo_sql=_parse_bool(env.get(f"{ENV_PREFIX}SQL_ECHO"), name=f"{ENV_PREFIX}SQL_ECHO"),
        )


def load_settings(dotenv_path: str | Path | None = None) -> Settings:
    """Load ``.env`` (without overriding real env vars) and read settings.

    Without ``dotenv_path`` the nearest ``.env`` at or above the working
    directory is used.
    """
    if dotenv_path is None:
        load_dotenv(find_dotenv(usecwd=True))
    else:
        load_dotenv(dotenv_path)
    return Settings.from_env()


def configure_logging(level: str | int = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _parse_bool(raw: str | None, *, name: str) -> bool:
    value = (raw or "").strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}.")


__all__ = ["ConfigurationError", "Settings", "configure_logging", "load_settings"]
