"""Write-side checks for submitted link sets."""

from __future__ import annotations

from typing import Sequence

from guardian_links.models.direction import Direction
from guardian_links.models.link import RELATIONSHIP_VALUES, LinkInput, RelationshipLabel


class LinkValidationError(ValueError):
    """Base class for rejected link input; raised before any store call."""

    def __init__(self, message: str, *, index: int | None = None):
        super().__init__(message)
        self.index = index


class MissingPrimaryError(LinkValidationError):
    """Raised when the primary entity id is blank."""


class MissingPartnerError(LinkValidationError):
    """Raised when an entry does not reference a partner."""


class InvalidRelationshipError(LinkValidationError):
    """Raised when an entry's relationship label is not in the closed set."""


class DuplicatePartnerError(LinkValidationError):
    """Raised when the same partner appears twice in one submission."""


def require_relationship(value: object, *, index: int | None = None) -> RelationshipLabel:
    """Strict counterpart of ``classify_relationship``: unknown labels raise."""
    if not isinstance(value, str) or value not in RELATIONSHIP_VALUES:
        raise InvalidRelationshipError(
            f"Each link must have a valid relationship (got {value!r}).", index=index
        )
    return RelationshipLabel(value)


def require_primary_id(primary_id: str, direction: Direction) -> str:
    normalized = primary_id.strip() if isinstance(primary_id, str) else ""
    if not normalized:
        raise MissingPrimaryError(f"A {direction.primary_label} id is required to manage links.")
    return normalized


def validate_links(links: Sequence[LinkInput], direction: Direction) -> None:
    """Check a desired link set; the first failing entry raises.

    Per entry, in order: the partner id is present, the relationship label
    is valid, the partner was not already listed.
    """
    seen_partner_ids: set[str] = set()
    for index, link in enumerate(links):
        partner_id = link.partner_id.strip() if isinstance(link.partner_id, str) else ""
        if not partner_id:
            raise MissingPartnerError(
                f"Each link must reference a {direction.partner_label}.", index=index
            )

        require_relationship(link.relationship, index=index)

        if partner_id in seen_partner_ids:
            raise DuplicatePartnerError(
                f"Duplicate {direction.partner_label} '{partner_id}' in links.", index=index
            )
        seen_partner_ids.add(partner_id)


__all__ = [
    "DuplicatePartnerError",
    "InvalidRelationshipError",
    "LinkValidationError",
    "MissingPartnerError",
    "MissingPrimaryError",
    "require_primary_id",
    "require_relationship",
    "validate_links",
]
