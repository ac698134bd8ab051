"""Link value types and directions."""

from .direction import GUARDIAN_TO_STUDENTS, STUDENT_TO_GUARDIANS, Direction
from .link import RELATIONSHIP_VALUES, Link, LinkInput, RelationshipLabel

__all__ = [
    "Direction",
    "GUARDIAN_TO_STUDENTS",
    "Link",
    "LinkInput",
    "RELATIONSHIP_VALUES",
    "RelationshipLabel",
    "STUDENT_TO_GUARDIANS",
]
