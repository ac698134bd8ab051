"""Minimal-diff reconciliation of persisted links against a desired set."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from guardian_links.db.schema import STUDENT_GUARDIANS
from guardian_links.links.mapper import classify_relationship, map_link, read_field, to_string
from guardian_links.links.validation import require_primary_id, validate_links
from guardian_links.models.direction import Direction
from guardian_links.models.link import Link, LinkInput, RelationshipLabel
from guardian_links.store.client import RecordStore, StoreError, StoreRecord, is_abort_like
from guardian_links.store.filters import equals_clause

logger = logging.getLogger(__name__)

LINK_SORT = "created_at,id"


@dataclass(slots=True)
class ReconcileResult:
    """Link ids touched by one reconcile call, per kind of mutation."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
        }


class LinkReconciler:
    """Moves the persisted links of one primary entity to a desired set.

    Mutations are issued one at a time with no transaction and no undo. A
    failure leaves the store partially updated; calling ``reconcile`` again
    with the same input recomputes the diff and finishes the job.
    """

    def __init__(self, store: RecordStore, *, collection: str = STUDENT_GUARDIANS):
        self._store = store
        self._collection = collection

    def reconcile(
        self,
        primary_id: str,
        desired_links: Sequence[LinkInput],
        direction: Direction,
    ) -> ReconcileResult:
        """Create, update and delete links so the store matches ``desired_links``."""
        normalized_primary_id = require_primary_id(primary_id, direction)
        validate_links(desired_links, direction)

        persisted = self._store.list_all_records(
            self._collection,
            filter_expr=equals_clause(direction.primary_field, normalized_primary_id),
            fields=f"id,{direction.partner_field},relationship",
            sort=LINK_SORT,
        )
        persisted_by_partner = self._index_by_partner(persisted, direction)

        result = ReconcileResult()
        for link in desired_links:
            partner_id = link.partner_id.strip()
            relationship = RelationshipLabel(link.relationship)
            existing = persisted_by_partner.pop(partner_id, None)

            if existing is None:
                created = self._store.create(
                    self._collection,
                    direction.link_payload(normalized_primary_id, partner_id, relationship.value),
                )
                result.created.append(to_string(read_field(created, "id")))
                logger.debug(
                    "Linked %s %s to %s %s as %s",
                    direction.primary_label,
                    normalized_primary_id,
                    direction.partner_label,
                    partner_id,
                    relationship.value,
                )
                continue

            existing_id = to_string(read_field(existing, "id"))
            if classify_relationship(read_field(existing, "relationship")) is not relationship:
                self._store.update(
                    self._collection, existing_id, {"relationship": relationship.value}
                )
                result.updated.append(existing_id)
                logger.debug("Relabelled link %s as %s", existing_id, relationship.value)

        for stale in persisted_by_partner.values():
            stale_id = to_string(read_field(stale, "id"))
            self._store.delete(self._collection, stale_id)
            result.deleted.append(stale_id)
            logger.debug("Removed link %s", stale_id)

        logger.info(
            "Reconciled links for %s %s: %s",
            direction.primary_label,
            normalized_primary_id,
            result.summary,
        )
        return result

    def list_links(self, primary_id: str, direction: Direction) -> list[Link]:
        """Return the primary's links with both sides expanded.

        Cancelled requests yield an empty list; other failures propagate.
        """
        normalized_primary_id = primary_id.strip() if isinstance(primary_id, str) else ""
        if not normalized_primary_id:
            return []

        try:
            records = self._store.list_all_records(
                self._collection,
                filter_expr=equals_clause(direction.primary_field, normalized_primary_id),
                expand="student_id,guardian_id",
                sort=LINK_SORT,
            )
        except StoreError as exc:
            if not is_abort_like(exc):
                raise
            logger.warning(
                "Ignoring cancelled link listing for %s %s: %r",
                direction.primary_label,
                normalized_primary_id,
                exc,
            )
            return []

        return [map_link(record) for record in records]

    def count_links(self, primary_id: str, direction: Direction) -> int:
        normalized_primary_id = primary_id.strip() if isinstance(primary_id, str) else ""
        if not normalized_primary_id:
            return 0

        page = self._store.list_records(
            self._collection,
            page=1,
            per_page=1,
            filter_expr=equals_clause(direction.primary_field, normalized_primary_id),
            sort=LINK_SORT,
        )
        return page.total_items

    @staticmethod
    def _index_by_partner(
        records: Sequence[StoreRecord], direction: Direction
    ) -> dict[str, StoreRecord]:
        """Index persisted links by partner id.

        When several links point at the same partner the last one in listing
        order is reconciled; the earlier ones are left untouched.
        """
        by_partner: dict[str, StoreRecord] = {}
        for record in records:
            by_partner[to_string(read_field(record, direction.partner_field))] = record
        return by_partner


__all__ = ["LINK_SORT", "LinkReconciler", "ReconcileResult"]
