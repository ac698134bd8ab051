"""SQLAlchemy-backed implementation of the record store contract."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Mapping
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from guardian_links.db.schema import COLLECTIONS, Base, CollectionSpec
from guardian_links.store.client import RecordPage, StoreError, split_list_param
from guardian_links.store.filters import (
    FilterSyntaxError,
    build_filter_expression,
    parse_filter,
)

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 500
_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


class SqlRecordStore:
    """Record store backed by the guardian/student/link tables.

    Every call opens its own short-lived session; there is no transaction
    spanning several calls, matching the remote store the engine targets.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        collections: Mapping[str, CollectionSpec] | None = None,
    ):
        self._session_factory = session_factory
        self._collections = dict(collections or COLLECTIONS)

    # ------------------------------------------------------------------ Reads
    def list_records(
        self,
        collection: str,
        *,
        page: int = 1,
        per_page: int = 30,
        filter_expr: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        sort: str | None = None,
    ) -> RecordPage:
        """Return one page of records matching ``filter_expr``."""
        if page < 1:
            raise StoreError("Page must be a positive integer.", status=400)
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise StoreError(f"per_page must be between 1 and {MAX_PER_PAGE}.", status=400)

        spec = self._require_collection(collection)
        expand_fields = self._expand_fields(spec, expand)

        with self._translate_errors(), self._session_factory() as session:
            query = select(spec.model)
            count_query = select(func.count()).select_from(spec.model)
            condition = self._compile_filter(spec, filter_expr)
            if condition is not None:
                query = query.where(condition)
                count_query = count_query.where(condition)
            query = query.order_by(*self._order_by(spec, sort))
            query = query.offset((page - 1) * per_page).limit(per_page)

            total_items = session.scalar(count_query) or 0
            rows = session.scalars(query).all()
            items = [
                _project(self._to_record(session, spec, row, expand_fields), fields)
                for row in rows
            ]

        return RecordPage(
            items=items,
            page=page,
            per_page=per_page,
            total_items=total_items,
            total_pages=math.ceil(total_items / per_page) if total_items else 0,
        )

    def list_all_records(
        self,
        collection: str,
        *,
        filter_expr: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        sort: str | None = None,
        batch_size: int = MAX_PER_PAGE,
    ) -> list[dict[str, Any]]:
        """Fetch every matching record, paging until the result is exhausted."""
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            result = self.list_records(
                collection,
                page=page,
                per_page=batch_size,
                filter_expr=filter_expr,
                expand=expand,
                fields=fields,
                sort=sort,
            )
            records.extend(result.items)
            if len(result.items) < batch_size or page >= result.total_pages:
                return records
            page += 1

    def get(self, collection: str, record_id: str, *, expand: str | None = None) -> dict[str, Any]:
        """Fetch a single record by id."""
        spec = self._require_collection(collection)
        expand_fields = self._expand_fields(spec, expand)
        with self._translate_errors(), self._session_factory() as session:
            row = self._require_row(session, spec, record_id)
            return self._to_record(session, spec, row, expand_fields)

    # -------------------------------------------------------------- Mutations
    def create(self, collection: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a record; an ``id`` is generated when the payload has none."""
        spec = self._require_collection(collection)
        values = self._check_payload(spec, payload, creating=True)
        values.setdefault("id", str(uuid4()))

        with self._translate_errors(), self._session_factory() as session:
            row = spec.model(**values)
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.debug("Created %s record %s", collection, row.id)
            return self._to_record(session, spec, row, [])

    def update(
        self, collection: str, record_id: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Apply a partial update to an existing record."""
        spec = self._require_collection(collection)
        values = self._check_payload(spec, payload, creating=False)

        with self._translate_errors(), self._session_factory() as session:
            row = self._require_row(session, spec, record_id)
            for key, value in values.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            logger.debug("Updated %s record %s (%s)", collection, record_id, ", ".join(values))
            return self._to_record(session, spec, row, [])

    def delete(self, collection: str, record_id: str) -> None:
        """Remove a record; missing ids raise a 404 ``StoreError``."""
        spec = self._require_collection(collection)
        with self._translate_errors(), self._session_factory() as session:
            row = self._require_row(session, spec, record_id)
            session.delete(row)
            session.commit()
            logger.debug("Deleted %s record %s", collection, record_id)

    # ---------------------------------------------------------------- Helpers
    def _require_collection(self, collection: str) -> CollectionSpec:
        spec = self._collections.get(collection)
        if spec is None:
            raise StoreError(f"Missing collection '{collection}'.", status=404)
        return spec

    @staticmethod
    def _require_row(session: Session, spec: CollectionSpec, record_id: str) -> Base:
        row = session.get(spec.model, record_id)
        if row is None:
            raise StoreError(
                f"The requested {spec.name} record '{record_id}' wasn't found.", status=404
            )
        return row

    @staticmethod
    def _check_payload(
        spec: CollectionSpec, payload: Mapping[str, Any], *, creating: bool
    ) -> dict[str, Any]:
        columns = spec.model.__table__.columns
        writable_on_create = {"id", "created_at"} if creating else set()
        values: dict[str, Any] = {}
        for key, value in payload.items():
            if key not in columns:
                raise StoreError(f"Unknown field '{key}' for {spec.name}.", status=400)
            if key in _IMMUTABLE_FIELDS and key not in writable_on_create:
                raise StoreError(f"Field '{key}' cannot be written.", status=400)
            values[key] = value
        return values

    @staticmethod
    def _expand_fields(spec: CollectionSpec, expand: str | None) -> list[str]:
        fields = split_list_param(expand)
        for name in fields:
            if name not in spec.relations:
                raise StoreError(f"Cannot expand '{name}' on {spec.name}.", status=400)
        return fields

    @staticmethod
    def _compile_filter(spec: CollectionSpec, filter_expr: str | None):
        try:
            expression = parse_filter(filter_expr or "")
            if expression is None:
                return None
            return build_filter_expression(spec.model, expression)
        except FilterSyntaxError as exc:
            raise StoreError(f"Invalid filter: {exc}", status=400) from exc

    @staticmethod
    def _order_by(spec: CollectionSpec, sort: str | None) -> list[Any]:
        columns = spec.model.__table__.columns
        clauses: list[Any] = []
        for item in split_list_param(sort):
            descending = item.startswith("-")
            name = item.lstrip("+-")
            if name not in columns:
                raise StoreError(f"Cannot sort {spec.name} by '{name}'.", status=400)
            column = getattr(spec.model, name)
            clauses.append(column.desc() if descending else column.asc())
        if not clauses:
            clauses.append(spec.model.id.asc())
        return clauses

    def _to_record(
        self,
        session: Session,
        spec: CollectionSpec,
        row: Base,
        expand_fields: list[str],
    ) -> dict[str, Any]:
        record = {
            column.name: _jsonable(getattr(row, column.name))
            for column in spec.model.__table__.columns
        }
        expanded: dict[str, Any] = {}
        for name in expand_fields:
            target_spec = self._collections[spec.relations[name]]
            related_id = getattr(row, name)
            related = session.get(target_spec.model, related_id) if related_id else None
            if related is not None:
                expanded[name] = self._to_record(session, target_spec, related, [])
        if expanded:
            record["expand"] = expanded
        return record

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            raise StoreError(
                f"Failed to write record: {exc.orig or exc}", status=400
            ) from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Record store failure: {exc}", status=None) from exc


def _project(record: dict[str, Any], fields: str | None) -> dict[str, Any]:
    """Restrict ``record`` to the comma separated ``fields`` selection.

    ``expand.<relation>.<field>`` picks fields of an expanded record,
    ``expand.<relation>`` keeps the whole expanded record and ``*`` keeps
    everything.
    """
    selectors = split_list_param(fields)
    if not selectors or "*" in selectors:
        return record

    projected: dict[str, Any] = {}
    expand_selection: dict[str, set[str] | None] = {}
    for selector in selectors:
        head, _, rest = selector.partition(".")
        if head != "expand":
            if head in record:
                projected[head] = record[head]
            continue
        relation, _, sub_field = rest.partition(".")
        if not relation:
            expand_selection.update({name: None for name in record.get("expand", {})})
        elif not sub_field or sub_field == "*":
            expand_selection[relation] = None
        elif expand_selection.get(relation, set()) is not None:
            expand_selection.setdefault(relation, set()).add(sub_field)

    expanded = record.get("expand") or {}
    projected_expand: dict[str, Any] = {}
    for relation, wanted in expand_selection.items():
        related = expanded.get(relation)
        if related is None:
            continue
        if wanted is None:
            projected_expand[relation] = related
        else:
            projected_expand[relation] = {k: v for k, v in related.items() if k in wanted}
    if projected_expand:
        projected["expand"] = projected_expand
    return projected


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


__all__ = ["MAX_PER_PAGE", "SqlRecordStore"]
