"""Startup helpers for bootstrapping the database and link service."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from guardian_links.config import Settings, load_settings
from guardian_links.db.engine import create_engine, create_session_factory
from guardian_links.db.schema import create_all
from guardian_links.service import LinkService, create_link_service
from guardian_links.store.sql_store import SqlRecordStore


@dataclass(slots=True)
class LinkContext:
    engine: Engine
    store: SqlRecordStore
    service: LinkService


def bootstrap(settings: Settings | None = None) -> LinkContext:
    """Create the engine, ensure the schema and wire the link service.

    - Settings are loaded from the environment (and ``.env``) when omitted.
    - Tables are created if missing; existing data is left untouched.
    """
    settings = settings or load_settings()
    engine = create_engine(
        settings.database_url,
        sqlite_path=settings.sqlite_path,
        echo=settings.echo_sql,
    )
    create_all(engine)
    store = SqlRecordStore(create_session_factory(engine))
    service = create_link_service(store, collection=settings.links_collection)
    return LinkContext(engine=engine, store=store, service=service)


__all__ = ["LinkContext", "bootstrap"]
