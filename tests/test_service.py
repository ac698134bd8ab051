from __future__ import annotations

import logging

import pytest

from guardian_links.db.schema import STUDENT_GUARDIANS
from guardian_links.links.reconciler import LINK_SORT
from guardian_links.models.link import RelationshipLabel
from guardian_links.service import LinkService, create_sql_link_service
from guardian_links.store.client import StoreError

pytestmark = pytest.mark.usefixtures("people")


def test_list_links_for_guardian_expands_both_sides(service: LinkService, link_factory):
    second_id = link_factory("g1", "s2", "mother")
    first_id = link_factory("g1", "s4", "uncle")

    links = service.list_links_for_guardian("g1")

    assert [link.id for link in links] == [second_id, first_id]
    bruno, ines = links
    assert bruno.student_id == "s2"
    assert bruno.student_name == "Bruno"
    assert bruno.student_active is True
    assert bruno.guardian_name == "Carlos Pérez"
    assert bruno.guardian_active is True
    assert bruno.relationship is RelationshipLabel.MOTHER
    assert ines.student_active is False
    assert ines.relationship is RelationshipLabel.OTHER


def test_list_links_for_student(service: LinkService, recording_store, link_factory):
    link_factory("g2", "s1", "father")
    link_factory("g1", "s2", "mother")

    links = service.list_links_for_student(" s1 ")

    assert [(link.guardian_id, link.guardian_name, link.guardian_active) for link in links] == [
        ("g2", "Marta Ruiz", False)
    ]
    assert recording_store.calls[0].kwargs == {
        "filter_expr": 'student_id = "s1"',
        "expand": "student_id,guardian_id",
        "sort": LINK_SORT,
    }


@pytest.mark.parametrize(
    "error",
    [
        StoreError("The request was aborted."),
        StoreError("Request autocancelled.", status=0),
        StoreError("", is_abort=True),
    ],
)
def test_cancelled_listing_returns_empty(
    service: LinkService, recording_store, link_factory, caplog, error
):
    link_factory("g1", "s1")
    recording_store.fail_on("list_all_records", error)

    with caplog.at_level(logging.WARNING, logger="guardian_links.links.reconciler"):
        assert service.list_links_for_guardian("g1") == []

    assert any("Ignoring cancelled link listing" in r.getMessage() for r in caplog.records)


def test_other_listing_failures_propagate(service: LinkService, recording_store):
    failure = StoreError("Internal error.", status=500)
    recording_store.fail_on("list_all_records", failure)

    with pytest.raises(StoreError) as excinfo:
        service.list_links_for_student("s1")

    assert excinfo.value is failure


def test_blank_ids_short_circuit_reads(service: LinkService, recording_store):
    assert service.list_links_for_guardian("  ") == []
    assert service.count_links_for_student("") == 0
    assert recording_store.calls == []


def test_count_links_reads_total_from_one_row_page(
    service: LinkService, recording_store, link_factory
):
    link_factory("g1", "s1")
    link_factory("g1", "s2")
    link_factory("g2", "s2")

    assert service.count_links_for_guardian("g1") == 2
    assert service.count_links_for_student("s2") == 2
    assert service.count_links_for_guardian("g3") == 0

    call = recording_store.calls[0]
    assert call.operation == "list_records"
    assert call.collection == STUDENT_GUARDIANS
    assert call.kwargs["page"] == 1
    assert call.kwargs["per_page"] == 1


def test_sql_link_service_factory(session_factory, link_factory):
    link_factory("g1", "s3", "father")

    service = create_sql_link_service(session_factory)

    assert service.student_names_by_guardian_ids(["g1"]) == {"g1": ["Luis"]}
    assert service.count_links_for_guardian("g1") == 1
