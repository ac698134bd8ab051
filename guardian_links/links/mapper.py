"""Normalization of raw link records into ``Link`` values.

Reads here are tolerant: nothing in this module raises on malformed data.
"""

from __future__ import annotations

from typing import Any

from guardian_links.models.direction import GUARDIAN_TO_STUDENTS, STUDENT_TO_GUARDIANS, Direction
from guardian_links.models.link import RELATIONSHIP_VALUES, Link, RelationshipLabel
from guardian_links.store.client import StoreRecord


def read_field(record: StoreRecord, name: str) -> Any:
    """Read ``name`` via the record's ``get`` accessor, else its attribute."""
    getter = getattr(record, "get", None)
    if callable(getter):
        value = getter(name)
        if value is not None:
            return value
    return getattr(record, name, None)


def to_string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def to_active(value: Any) -> bool:
    """Anything but a literal ``False`` counts as active, absence included."""
    return value is not False


def classify_relationship(value: Any) -> RelationshipLabel:
    """Map any stored value onto the label set; unknown values become ``other``."""
    normalized = to_string(value)
    if normalized in RELATIONSHIP_VALUES:
        return RelationshipLabel(normalized)
    return RelationshipLabel.OTHER


def expanded_record(record: StoreRecord, relation: str) -> StoreRecord | None:
    """Return the expanded record for ``relation``, taking the first of a list."""
    expand = read_field(record, "expand")
    if expand is None:
        return None
    expanded = read_field(expand, relation)
    if isinstance(expanded, (list, tuple)):
        return expanded[0] if expanded else None
    if expanded is None or isinstance(expanded, (str, bytes, int, float, bool)):
        return None
    return expanded


def partner_name_and_active(record: StoreRecord, direction: Direction) -> tuple[str, bool]:
    """Resolve the display name and active flag of the expanded partner.

    Without an expanded record the name is empty and the flag ``False``.
    """
    related = expanded_record(record, direction.partner_field)
    if related is None:
        return "", False
    return (
        to_string(read_field(related, direction.partner_name_field)),
        to_active(read_field(related, direction.partner_active_field)),
    )


def map_link(record: StoreRecord) -> Link:
    """Translate a raw link record into a ``Link``."""
    student_name, student_active = partner_name_and_active(record, GUARDIAN_TO_STUDENTS)
    guardian_name, guardian_active = partner_name_and_active(record, STUDENT_TO_GUARDIANS)
    return Link(
        id=to_string(read_field(record, "id")),
        student_id=to_string(read_field(record, "student_id")),
        guardian_id=to_string(read_field(record, "guardian_id")),
        relationship=classify_relationship(read_field(record, "relationship")),
        student_name=student_name,
        student_active=student_active,
        guardian_name=guardian_name,
        guardian_active=guardian_active,
    )


__all__ = [
    "classify_relationship",
    "expanded_record",
    "map_link",
    "partner_name_and_active",
    "read_field",
    "to_active",
    "to_string",
]
