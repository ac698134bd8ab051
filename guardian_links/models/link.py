"""Pydantic models for guardian–student links."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class RelationshipLabel(str, Enum):
    """Closed set of labels a link may carry."""

    FATHER = "father"
    MOTHER = "mother"
    OTHER = "other"


RELATIONSHIP_VALUES: frozenset[str] = frozenset(label.value for label in RelationshipLabel)


class Link(BaseModel):
    """Normalized view of one persisted link record.

    The name/active values are denormalized from the expanded student and
    guardian records and are only meaningful on reads; an unexpanded side
    reads as an empty name and ``False``.
    """

    id: str
    student_id: str
    guardian_id: str
    relationship: RelationshipLabel
    student_name: str = ""
    student_active: bool = False
    guardian_name: str = ""
    guardian_active: bool = False

    model_config = ConfigDict(frozen=True)


class LinkInput(BaseModel):
    """Desired (partner, relationship) pair submitted for one primary entity.

    Both fields accept any string or ``None`` so that blank, missing and
    unknown values reach the validator and are rejected there with a precise
    error.
    """

    partner_id: str | None
    relationship: str | None

    model_config = ConfigDict(frozen=True)


__all__ = ["Link", "LinkInput", "RELATIONSHIP_VALUES", "RelationshipLabel"]
