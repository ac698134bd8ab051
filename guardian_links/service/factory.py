"""Factory helpers for constructing the link service façade."""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from guardian_links.db.schema import STUDENT_GUARDIANS
from guardian_links.links.batch import LinkBatchCreator
from guardian_links.links.name_index import NameIndexBuilder
from guardian_links.links.reconciler import LinkReconciler
from guardian_links.store.client import RecordStore
from guardian_links.store.sql_store import SqlRecordStore

from .link_service import LinkService


def create_link_service(
    store: RecordStore, *, collection: str = STUDENT_GUARDIANS
) -> LinkService:
    """Build a LinkService whose components share ``store``."""
    return LinkService(
        LinkReconciler(store, collection=collection),
        LinkBatchCreator(store, collection=collection),
        NameIndexBuilder(store, collection=collection),
    )


def create_sql_link_service(
    session_factory: sessionmaker[Session], *, collection: str = STUDENT_GUARDIANS
) -> LinkService:
    """Build a LinkService backed by the SQL record store."""
    return create_link_service(SqlRecordStore(session_factory), collection=collection)


__all__ = ["create_link_service", "create_sql_link_service"]
