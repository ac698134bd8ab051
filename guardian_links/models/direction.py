"""Orientation of a link operation: which side is primary, which is partner."""

from __future__ import annotations

from dataclasses import dataclass

from guardian_links.models.link import Link


@dataclass(frozen=True, slots=True)
class Direction:
    """Field names describing one orientation of the guardian–student link.

    ``primary_field``/``partner_field`` are the link record's foreign keys;
    the ``partner_*`` names are fields of the expanded partner record.
    """

    name: str
    primary_field: str
    partner_field: str
    partner_name_field: str
    partner_active_field: str
    primary_label: str
    partner_label: str

    def partner_id(self, link: Link) -> str:
        return getattr(link, self.partner_field)

    def partner_name(self, link: Link) -> str:
        return link.student_name if self.partner_field == "student_id" else link.guardian_name

    def partner_active(self, link: Link) -> bool:
        return link.student_active if self.partner_field == "student_id" else link.guardian_active

    def link_payload(self, primary_id: str, partner_id: str, relationship: str) -> dict[str, str]:
        """Return a create payload with both ids placed on the right fields."""
        return {
            self.primary_field: primary_id,
            self.partner_field: partner_id,
            "relationship": relationship,
        }


GUARDIAN_TO_STUDENTS = Direction(
    name="guardian_to_students",
    primary_field="guardian_id",
    partner_field="student_id",
    partner_name_field="name",
    partner_active_field="active",
    primary_label="guardian",
    partner_label="student",
)

STUDENT_TO_GUARDIANS = Direction(
    name="student_to_guardians",
    primary_field="student_id",
    partner_field="guardian_id",
    partner_name_field="full_name",
    partner_active_field="is_active",
    primary_label="student",
    partner_label="guardian",
)


__all__ = ["Direction", "GUARDIAN_TO_STUDENTS", "STUDENT_TO_GUARDIANS"]
