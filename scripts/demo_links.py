"""Seed a few guardians and students, reconcile their links and print the result."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from guardian_links.config import Settings, configure_logging, load_settings
from guardian_links.db.schema import GUARDIANS, STUDENT_GUARDIANS, STUDENTS
from guardian_links.models.direction import GUARDIAN_TO_STUDENTS, STUDENT_TO_GUARDIANS, Direction
from guardian_links.models.link import Link, LinkInput
from guardian_links.startup import bootstrap
from guardian_links.store.client import StoreError

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a guardian/student link reconciliation demo.")
    parser.add_argument("--sqlite-path", type=Path, help="Persist to this SQLite file instead of memory.")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = load_settings(PROJECT_ROOT / ".env")
    if args.sqlite_path is not None:
        settings = Settings(
            sqlite_path=args.sqlite_path,
            links_collection=settings.links_collection,
            log_level=settings.log_level,
            echo_sql=settings.echo_sql,
        )
    configure_logging(logging.WARNING if args.quiet else settings.log_level)
    logger = logging.getLogger("demo_links")

    context = bootstrap(settings)
    store = context.store
    service = context.service

    try:
        _seed(store)
    except StoreError as exc:
        raise SystemExit(f"Seeding failed ({exc.status}): {exc.message}")

    logger.info("Seeded demo data; reconciling guardian g1")
    result = service.reconcile_guardian_students(
        "g1",
        [
            LinkInput(partner_id="s1", relationship="mother"),
            LinkInput(partner_id="s3", relationship="father"),
        ],
    )
    print(f"Reconcile summary: {result.summary}\n")

    print("Links for guardian g1:")
    for link in service.list_links_for_guardian("g1"):
        print(_describe(link, GUARDIAN_TO_STUDENTS))

    print("\nLinks for student s1:")
    for link in service.list_links_for_student("s1"):
        print(_describe(link, STUDENT_TO_GUARDIANS))

    print("\nStudent names by guardian:")
    for guardian_id, names in service.student_names_by_guardian_ids(["g1", "g2"]).items():
        print(f"- {guardian_id}: {', '.join(names) or '(none)'}")


def _describe(link: Link, direction: Direction) -> str:
    name = direction.partner_name(link) or "?"
    state = "" if direction.partner_active(link) else " [inactive]"
    return f"- {direction.partner_id(link)} ({name}{state}): {link.relationship.value}"


def _seed(store) -> None:
    if store.list_records(GUARDIANS, per_page=1).total_items:
        return

    store.create(GUARDIANS, {"id": "g1", "full_name": "Carlos Pérez"})
    store.create(GUARDIANS, {"id": "g2", "full_name": "Marta Ruiz", "is_active": False})
    store.create(STUDENTS, {"id": "s1", "name": "Ana"})
    store.create(STUDENTS, {"id": "s2", "name": "Bruno"})
    store.create(STUDENTS, {"id": "s3", "name": "Luis"})

    earlier = datetime.now(timezone.utc) - timedelta(days=1)
    store.create(
        STUDENT_GUARDIANS,
        {"guardian_id": "g1", "student_id": "s1", "relationship": "father", "created_at": earlier},
    )
    store.create(
        STUDENT_GUARDIANS,
        {"guardian_id": "g1", "student_id": "s2", "relationship": "mother", "created_at": earlier},
    )


if __name__ == "__main__":
    main()
