"""SQLAlchemy declarative schema for the guardian/student record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

GUARDIANS = "guardians"
STUDENTS = "students"
STUDENT_GUARDIANS = "student_guardians"


def _utcnow() -> datetime:
    # Client-side so timestamps keep sub-second precision on SQLite, where
    # listings sort by created_at.
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy declarative mappings."""


class DbGuardian(Base):
    """ORM mapping for a guardian record."""

    __tablename__ = GUARDIANS
    __table_args__ = (Index("ix_guardians_full_name", "full_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # NULL counts as active, only an explicit FALSE deactivates.
    is_active: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class DbStudent(Base):
    """ORM mapping for a student record."""

    __tablename__ = STUDENTS
    __table_args__ = (Index("ix_students_name", "name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    active: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class DbStudentGuardian(Base):
    """ORM mapping for the labeled link between a student and a guardian."""

    __tablename__ = STUDENT_GUARDIANS
    __table_args__ = (
        Index("ix_student_guardians_student", "student_id"),
        Index("ix_student_guardians_guardian", "guardian_id"),
        Index("ix_student_guardians_unique", "student_id", "guardian_id", unique=True),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    guardian_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("guardians.id", ondelete="CASCADE"), nullable=False
    )
    # Free text on purpose: rows written by other tools may carry labels
    # outside father/mother/other and must still load.
    relationship: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    """Describes how a named collection maps onto an ORM class."""

    name: str
    model: type[Base]
    # relation field -> target collection name
    relations: dict[str, str] = field(default_factory=dict)


COLLECTIONS: dict[str, CollectionSpec] = {
    GUARDIANS: CollectionSpec(GUARDIANS, DbGuardian),
    STUDENTS: CollectionSpec(STUDENTS, DbStudent),
    STUDENT_GUARDIANS: CollectionSpec(
        STUDENT_GUARDIANS,
        DbStudentGuardian,
        relations={"student_id": STUDENTS, "guardian_id": GUARDIANS},
    ),
}


def create_all(engine: Engine) -> None:
    """Create database tables for the schema."""
    Base.metadata.create_all(engine, checkfirst=True)


__all__ = [
    "Base",
    "COLLECTIONS",
    "CollectionSpec",
    "DbGuardian",
    "DbStudent",
    "DbStudentGuardian",
    "GUARDIANS",
    "STUDENTS",
    "STUDENT_GUARDIANS",
    "create_all",
]
