"""Initial link creation for a freshly created primary entity."""

from __future__ import annotations

import logging
from typing import Sequence

from guardian_links.db.schema import STUDENT_GUARDIANS
from guardian_links.links.mapper import read_field, to_string
from guardian_links.links.validation import require_primary_id, validate_links
from guardian_links.models.direction import Direction
from guardian_links.models.link import LinkInput, RelationshipLabel
from guardian_links.store.client import RecordStore, StoreError, normalize_store_error

logger = logging.getLogger(__name__)


class RollbackSuppressedError(StoreError):
    """A compensating delete failed while undoing a partial batch.

    Only ever logged: raising it would hide the failure that triggered the
    rollback.
    """

    def __init__(self, link_id: str, cause: BaseException):
        normalized = normalize_store_error(cause)
        super().__init__(
            f"Could not roll back link {link_id}: {normalized.message}",
            status=normalized.status,
            is_abort=normalized.is_abort,
        )
        self.link_id = link_id
        self.__cause__ = cause


class LinkBatchCreator:
    """Creates a batch of links, all or (best effort) none.

    Links are created one by one. If one create fails, every link created
    earlier in the same call is deleted again and the original error is
    re-raised unchanged. A delete that fails during that rollback leaves an
    orphan link behind; it is logged and otherwise ignored.
    """

    def __init__(self, store: RecordStore, *, collection: str = STUDENT_GUARDIANS):
        self._store = store
        self._collection = collection

    def create_links(
        self,
        primary_id: str,
        links: Sequence[LinkInput],
        direction: Direction,
    ) -> list[str]:
        """Create ``links`` for ``primary_id`` and return the new link ids."""
        normalized_primary_id = require_primary_id(primary_id, direction)
        validate_links(links, direction)

        created_ids: list[str] = []
        try:
            for link in links:
                created = self._store.create(
                    self._collection,
                    direction.link_payload(
                        normalized_primary_id,
                        link.partner_id.strip(),
                        RelationshipLabel(link.relationship).value,
                    ),
                )
                created_ids.append(to_string(read_field(created, "id")))
        except Exception:
            if created_ids:
                self._roll_back(created_ids)
            raise

        logger.info(
            "Created %d link(s) for %s %s",
            len(created_ids),
            direction.primary_label,
            normalized_primary_id,
        )
        return created_ids

    def _roll_back(self, link_ids: Sequence[str]) -> list[RollbackSuppressedError]:
        failures: list[RollbackSuppressedError] = []
        for link_id in link_ids:
            try:
                self._store.delete(self._collection, link_id)
            except Exception as exc:  # logged, never raised
                failure = RollbackSuppressedError(link_id, exc)
                failures.append(failure)
                logger.warning("%s", failure.message, exc_info=failure)
        logger.info(
            "Rolled back %d of %d link(s)", len(link_ids) - len(failures), len(link_ids)
        )
        return failures


__all__ = ["LinkBatchCreator", "RollbackSuppressedError"]
