"""Direction-specific entry points over the link engine."""

from __future__ import annotations

from typing import Iterable, Sequence

from guardian_links.links.batch import LinkBatchCreator
from guardian_links.links.name_index import NameIndexBuilder
from guardian_links.links.reconciler import LinkReconciler, ReconcileResult
from guardian_links.models.direction import GUARDIAN_TO_STUDENTS, STUDENT_TO_GUARDIANS
from guardian_links.models.link import Link, LinkInput


class LinkService:
    """Thin façade that names each operation after the entity it serves.

    Guardian-centric methods take a guardian id and student partners;
    student-centric methods take a student id and guardian partners.
    """

    def __init__(
        self,
        reconciler: LinkReconciler,
        batch_creator: LinkBatchCreator,
        name_index: NameIndexBuilder,
    ):
        """Internal constructor; prefer ``create_link_service`` for public use."""
        self._reconciler = reconciler
        self._batch_creator = batch_creator
        self._name_index = name_index

    # ------------------------------------------------------------------ Queries
    def list_links_for_guardian(self, guardian_id: str) -> list[Link]:
        return self._reconciler.list_links(guardian_id, GUARDIAN_TO_STUDENTS)

    def list_links_for_student(self, student_id: str) -> list[Link]:
        return self._reconciler.list_links(student_id, STUDENT_TO_GUARDIANS)

    def count_links_for_guardian(self, guardian_id: str) -> int:
        return self._reconciler.count_links(guardian_id, GUARDIAN_TO_STUDENTS)

    def count_links_for_student(self, student_id: str) -> int:
        return self._reconciler.count_links(student_id, STUDENT_TO_GUARDIANS)

    def student_names_by_guardian_ids(self, guardian_ids: Iterable[str]) -> dict[str, list[str]]:
        """Active student names linked to each guardian."""
        return self._name_index.build(guardian_ids, GUARDIAN_TO_STUDENTS)

    def guardian_names_by_student_ids(self, student_ids: Iterable[str]) -> dict[str, list[str]]:
        """Active guardian names linked to each student."""
        return self._name_index.build(student_ids, STUDENT_TO_GUARDIANS)

    # ----------------------------------------------------------- Mutating ops
    def reconcile_guardian_students(
        self, guardian_id: str, links: Sequence[LinkInput]
    ) -> ReconcileResult:
        """Make the guardian's student links match ``links``."""
        return self._reconciler.reconcile(guardian_id, links, GUARDIAN_TO_STUDENTS)

    def reconcile_student_guardians(
        self, student_id: str, links: Sequence[LinkInput]
    ) -> ReconcileResult:
        """Make the student's guardian links match ``links``."""
        return self._reconciler.reconcile(student_id, links, STUDENT_TO_GUARDIANS)

    def create_guardian_links(self, guardian_id: str, links: Sequence[LinkInput]) -> list[str]:
        """Attach the first student links to a newly created guardian."""
        return self._batch_creator.create_links(guardian_id, links, GUARDIAN_TO_STUDENTS)

    def create_student_links(self, student_id: str, links: Sequence[LinkInput]) -> list[str]:
        """Attach the first guardian links to a newly created student."""
        return self._batch_creator.create_links(student_id, links, STUDENT_TO_GUARDIANS)


__all__ = ["LinkService"]
