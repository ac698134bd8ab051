from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from sqlalchemy.engine import Engine

from guardian_links.db.engine import create_engine, create_session_factory
from guardian_links.db.schema import (
    GUARDIANS,
    STUDENT_GUARDIANS,
    STUDENTS,
    Base,
    DbGuardian,
    DbStudent,
    DbStudentGuardian,
    create_all,
)
from guardian_links.service import LinkService, create_link_service
from guardian_links.store.sql_store import SqlRecordStore


@pytest.fixture(scope="session")
def postgres_url() -> str | None:
    """Return the Postgres test URL if provided via env."""
    return os.getenv("POSTGRES_TEST_URL")


@pytest.fixture
def engine(postgres_url: str | None) -> Iterator[Engine]:
    """Yield an engine targeting Postgres when configured; otherwise SQLite in-memory."""
    engine = create_engine(postgres_url) if postgres_url else create_engine()
    create_all(engine)
    try:
        yield engine
    finally:
        with engine.begin() as connection:
            if engine.dialect.name == "sqlite":
                Base.metadata.drop_all(bind=connection)
            else:
                connection.execute(DbStudentGuardian.__table__.delete())
                connection.execute(DbStudent.__table__.delete())
                connection.execute(DbGuardian.__table__.delete())
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory) -> SqlRecordStore:
    return SqlRecordStore(session_factory)


@dataclass
class Call:
    operation: str
    collection: str
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class RecordingStore:
    """Record store wrapper that logs every call and can inject failures."""

    MUTATIONS = ("create", "update", "delete")

    def __init__(self, inner: SqlRecordStore):
        self.inner = inner
        self.calls: list[Call] = []
        self._failures: list[tuple[str, Callable[[Call], bool], BaseException]] = []

    def fail_on(
        self,
        operation: str,
        error: BaseException,
        when: Callable[[Call], bool] = lambda call: True,
    ) -> None:
        self._failures.append((operation, when, error))

    def clear_failures(self) -> None:
        self._failures.clear()

    def reset(self) -> None:
        self.calls.clear()

    def mutations(self) -> list[Call]:
        return [call for call in self.calls if call.operation in self.MUTATIONS]

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call.operation == operation)

    def _record(self, call: Call) -> None:
        self.calls.append(call)
        for operation, when, error in self._failures:
            if operation == call.operation and when(call):
                raise error

    def list_records(self, collection: str, **kwargs: Any):
        self._record(Call("list_records", collection, kwargs=kwargs))
        return self.inner.list_records(collection, **kwargs)

    def list_all_records(self, collection: str, **kwargs: Any):
        self._record(Call("list_all_records", collection, kwargs=kwargs))
        return self.inner.list_all_records(collection, **kwargs)

    def create(self, collection: str, payload):
        self._record(Call("create", collection, args=(dict(payload),)))
        return self.inner.create(collection, payload)

    def update(self, collection: str, record_id: str, payload):
        self._record(Call("update", collection, args=(record_id, dict(payload))))
        return self.inner.update(collection, record_id, payload)

    def delete(self, collection: str, record_id: str) -> None:
        self._record(Call("delete", collection, args=(record_id,)))
        self.inner.delete(collection, record_id)


@pytest.fixture
def recording_store(store: SqlRecordStore) -> RecordingStore:
    return RecordingStore(store)


@pytest.fixture
def service(recording_store: RecordingStore) -> LinkService:
    return create_link_service(recording_store)


@pytest.fixture
def people(store: SqlRecordStore) -> None:
    """Seed guardians and students used across tests.

    g2 is an inactive guardian, s4 an inactive student and s5 a student
    without a name.
    """
    store.create(GUARDIANS, {"id": "g1", "full_name": "Carlos Pérez"})
    store.create(GUARDIANS, {"id": "g2", "full_name": "Marta Ruiz", "is_active": False})
    store.create(GUARDIANS, {"id": "g3", "full_name": "Elena Soto", "is_active": None})
    store.create(STUDENTS, {"id": "s1", "name": "Ana"})
    store.create(STUDENTS, {"id": "s2", "name": "Bruno"})
    store.create(STUDENTS, {"id": "s3", "name": "Luis"})
    store.create(STUDENTS, {"id": "s4", "name": "Inés", "active": False})
    store.create(STUDENTS, {"id": "s5", "name": "   "})


@pytest.fixture
def link_factory(store: SqlRecordStore) -> Callable[..., str]:
    """Insert a link directly, returning its id.

    Links get increasing ``created_at`` values a second apart, so listings
    sorted by ``created_at`` follow insertion order.
    """
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"value": 0}

    def _factory(guardian_id: str, student_id: str, relationship: str | None = "other") -> str:
        counter["value"] += 1
        record = store.create(
            STUDENT_GUARDIANS,
            {
                "guardian_id": guardian_id,
                "student_id": student_id,
                "relationship": relationship,
                "created_at": base + timedelta(seconds=counter["value"]),
            },
        )
        return record["id"]

    return _factory


@pytest.fixture
def persisted_pairs(store: SqlRecordStore) -> Callable[..., set[tuple[str, str, str | None]]]:
    """Return ``(guardian_id, student_id, relationship)`` for stored links."""

    def _pairs(**filters: str) -> set[tuple[str, str, str | None]]:
        clause = " && ".join(f'{key} = "{value}"' for key, value in filters.items())
        records = store.list_all_records(STUDENT_GUARDIANS, filter_expr=clause or None)
        return {(r["guardian_id"], r["student_id"], r["relationship"]) for r in records}

    return _pairs
