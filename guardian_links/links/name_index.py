"""Active partner names per primary entity, for read-only list columns."""

from __future__ import annotations

from typing import Iterable

from guardian_links.db.schema import STUDENT_GUARDIANS
from guardian_links.links.mapper import partner_name_and_active, read_field, to_string
from guardian_links.links.reconciler import LINK_SORT
from guardian_links.models.direction import Direction
from guardian_links.store.client import RecordStore
from guardian_links.store.filters import build_or_filter


def normalize_ids(ids: Iterable[str]) -> list[str]:
    """Trim ids, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for raw in ids:
        value = raw.strip() if isinstance(raw, str) else ""
        if value:
            seen.setdefault(value, None)
    return list(seen)


class NameIndexBuilder:
    """Builds ``primary id -> [active partner names]`` from a single query."""

    def __init__(self, store: RecordStore, *, collection: str = STUDENT_GUARDIANS):
        self._store = store
        self._collection = collection

    def build(self, primary_ids: Iterable[str], direction: Direction) -> dict[str, list[str]]:
        """Return de-duplicated active partner names for every requested id.

        Each requested id is a key, with an empty list when nothing
        qualifies. Inactive partners and partners without a name are skipped.
        """
        normalized_ids = normalize_ids(primary_ids)
        if not normalized_ids:
            return {}

        partner = direction.partner_field
        records = self._store.list_all_records(
            self._collection,
            filter_expr=build_or_filter(direction.primary_field, normalized_ids),
            expand=partner,
            fields=(
                f"id,{direction.primary_field},{partner},"
                f"expand.{partner}.{direction.partner_name_field},"
                f"expand.{partner}.{direction.partner_active_field}"
            ),
            sort=LINK_SORT,
        )

        names: dict[str, list[str]] = {primary_id: [] for primary_id in normalized_ids}
        for record in records:
            name, active = partner_name_and_active(record, direction)
            if not active or not name:
                continue
            primary_id = to_string(read_field(record, direction.primary_field))
            bucket = names.setdefault(primary_id, [])
            if name not in bucket:
                bucket.append(name)
        return names


__all__ = ["NameIndexBuilder", "normalize_ids"]
