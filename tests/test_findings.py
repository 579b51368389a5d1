"""
COR-SAFE — Finding Lifecycle Tests
===================================
Risk-based due dates, the correction state machine and overdue detection.
"""

import datetime

import pytest

from corsafe.clock import FixedClock, UTC
from corsafe.errors import (
    ValidationError, PreconditionFailed, InvalidTransition, NotFound, ConcurrentModification,
)
from corsafe.findings.lifecycle import FindingLifecycle, is_overdue, corrected_on_time
from corsafe.findings.models import FindingStatus, RiskLevel
from corsafe.storage import MemoryDocumentStore
from tests.conftest import START, make_template, start_inspection, complete_inspection


def _day(y, m, d):
    return datetime.datetime(y, m, d, tzinfo=UTC)


class TestDueDates:

    @pytest.mark.parametrize("level,days", [
        ("critical", 1), ("high", 7), ("medium", 30), ("low", 90),
    ])
    def test_due_date_from_risk(self, service, level, days):
        finding = service.findings.create(level, "Exposed wiring")
        assert finding.due_date == START + datetime.timedelta(days=days)
        assert finding.status == FindingStatus.OPEN

    def test_high_finding_created_new_year(self):
        lifecycle = FindingLifecycle(MemoryDocumentStore(), clock=FixedClock(_day(2025, 1, 1)))
        finding = lifecycle.create("high", "Blocked exit")
        assert finding.due_date == _day(2025, 1, 8)

    def test_explicit_due_date_wins(self, service):
        finding = service.findings.create("low", "Loose rail", due_date="2025-01-03")
        assert finding.due_date == _day(2025, 1, 3)

    def test_configured_offsets(self, store, clock):
        lifecycle = FindingLifecycle(store, clock=clock,
                                     due_date_offsets={RiskLevel.HIGH: datetime.timedelta(days=3)})
        assert lifecycle.create("high", "x").due_date == START + datetime.timedelta(days=3)
        assert lifecycle.create("low", "y").due_date == START + datetime.timedelta(days=90)

    def test_bad_risk_level_rejected(self, service):
        with pytest.raises(ValidationError):
            service.findings.create("extreme", "x")

    def test_description_required(self, service):
        with pytest.raises(ValidationError):
            service.findings.create("low", "  ")


class TestOverdue:

    def test_open_past_due_is_overdue(self, service):
        finding = service.findings.create("critical", "Spill")
        assert not is_overdue(finding, START + datetime.timedelta(hours=23))
        assert is_overdue(finding, START + datetime.timedelta(days=2))

    def test_corrected_is_never_overdue(self, service):
        finding = service.findings.create("critical", "Spill")
        finding = service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        assert not is_overdue(finding, START + datetime.timedelta(days=365))

    def test_in_progress_can_be_overdue(self, service):
        finding = service.findings.create("critical", "Spill")
        finding = service.findings.set_status(finding.id, "in_progress")
        assert is_overdue(finding, START + datetime.timedelta(days=2))

    def test_check_overdue_emits_events(self, service, clock, events):
        late = service.findings.create("critical", "Spill")
        service.findings.create("low", "Scuffed floor")
        clock.advance(days=3)

        overdue = service.findings.check_overdue()
        assert [f.id for f in overdue] == [late.id]
        emitted = events.of_type("finding.overdue")
        assert len(emitted) == 1
        assert emitted[0].severity == "critical"
        assert emitted[0].details["days_overdue"] == 2

    def test_naive_now_treated_as_utc(self, service, events):
        finding = service.findings.create("critical", "Spill")
        naive = datetime.datetime(2025, 3, 1)
        assert is_overdue(finding, naive)
        assert [f.id for f in service.findings.list_findings(overdue=True, now=naive)] == [finding.id]
        assert [f.id for f in service.findings.check_overdue(now=naive)] == [finding.id]
        assert len(events.of_type("finding.overdue")) == 1


class TestStatusTransitions:

    def test_full_path(self, service, clock, events):
        finding = service.findings.create("medium", "Frayed cord")
        finding = service.findings.set_status(finding.id, "in_progress")
        clock.advance(days=2)
        finding = service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        assert finding.corrected_by == "Sam"
        assert finding.corrected_date == START + datetime.timedelta(days=2)
        clock.advance(days=1)
        finding = service.findings.set_status(finding.id, "verified", verified_by="Alex")
        assert finding.status == FindingStatus.VERIFIED
        assert finding.verified_date == START + datetime.timedelta(days=3)

        changes = events.of_type("finding.status_changed")
        assert [(e.details["from"], e.details["to"]) for e in changes] == [
            ("open", "in_progress"), ("in_progress", "corrected"), ("corrected", "verified"),
        ]

    def test_open_straight_to_corrected(self, service):
        finding = service.findings.create("low", "x")
        finding = service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        assert finding.status == FindingStatus.CORRECTED

    @pytest.mark.parametrize("path,target", [
        ([], "verified"),
        (["in_progress"], "open"),
        (["corrected"], "in_progress"),
        (["corrected", "verified"], "corrected"),
    ])
    def test_invalid_transitions(self, service, path, target):
        finding = service.findings.create("low", "x")
        for status in path:
            service.findings.set_status(finding.id, status, corrected_by="Sam", verified_by="Alex")
        with pytest.raises(InvalidTransition):
            service.findings.set_status(finding.id, target, corrected_by="Sam", verified_by="Alex")

    def test_corrected_by_required(self, service):
        finding = service.findings.create("low", "x")
        with pytest.raises(ValidationError):
            service.findings.set_status(finding.id, "corrected")
        assert service.findings.get(finding.id).status == FindingStatus.OPEN

    def test_verified_by_required(self, service):
        finding = service.findings.create("low", "x")
        service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        with pytest.raises(ValidationError):
            service.findings.set_status(finding.id, "verified", verified_by="")

    def test_unknown_status_rejected(self, service):
        finding = service.findings.create("low", "x")
        with pytest.raises(ValidationError):
            service.findings.set_status(finding.id, "closed")

    def test_unknown_finding(self, service):
        with pytest.raises(NotFound):
            service.findings.set_status("fnd-missing", "in_progress")


class TestCorrectedOnTime:

    def test_corrected_before_due(self):
        lifecycle = FindingLifecycle(MemoryDocumentStore(), clock=FixedClock(_day(2025, 1, 1)))
        finding = lifecycle.create("high", "Blocked exit")
        lifecycle.clock.set(_day(2025, 1, 5))
        finding = lifecycle.set_status(finding.id, "corrected", corrected_by="Sam")
        assert corrected_on_time(finding)

    def test_corrected_after_due(self, service, clock):
        finding = service.findings.create("critical", "Spill")
        clock.advance(days=3)
        finding = service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        assert not corrected_on_time(finding)

    def test_open_is_not_corrected_on_time(self, service):
        assert not corrected_on_time(service.findings.create("low", "x"))


class TestUpdate:

    def test_risk_change_keeps_due_date(self, service):
        finding = service.findings.create("low", "Loose rail")
        updated = service.findings.update(finding.id, {"risk_level": "critical"})
        assert updated.risk_level == RiskLevel.CRITICAL
        assert updated.due_date == finding.due_date

    def test_supplied_due_date_overwrites(self, service):
        finding = service.findings.create("low", "Loose rail")
        updated = service.findings.update(finding.id, {"due_date": "2025-01-02T12:00:00Z",
                                                       "assigned_to": "Maintenance"})
        assert updated.due_date == datetime.datetime(2025, 1, 2, 12, tzinfo=UTC)
        assert updated.assigned_to == "Maintenance"

    def test_closed_findings_are_frozen(self, service):
        finding = service.findings.create("low", "x")
        service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        with pytest.raises(PreconditionFailed):
            service.findings.update(finding.id, {"description": "y"})

    def test_status_not_editable_through_update(self, service):
        finding = service.findings.create("low", "x")
        with pytest.raises(ValidationError):
            service.findings.update(finding.id, {"status": "verified"})

    def test_stale_version(self, service):
        finding = service.findings.create("low", "x")
        service.findings.update(finding.id, {"location": "Bay 2"}, expected_version=1)
        with pytest.raises(ConcurrentModification):
            service.findings.update(finding.id, {"location": "Bay 3"}, expected_version=1)


class TestCapaLink:

    def test_link_once(self, service):
        finding = service.findings.create("high", "x")
        linked = service.findings.link_capa(finding.id, "CAPA-12")
        assert linked.linked_capa_id == "CAPA-12"
        with pytest.raises(PreconditionFailed):
            service.findings.link_capa(finding.id, "CAPA-13")

    def test_link_allowed_when_verified(self, service):
        finding = service.findings.create("low", "x")
        service.findings.set_status(finding.id, "corrected", corrected_by="Sam")
        service.findings.set_status(finding.id, "verified", verified_by="Alex")
        assert service.findings.link_capa(finding.id, "CAPA-1").linked_capa_id == "CAPA-1"

    def test_capa_id_required(self, service):
        finding = service.findings.create("low", "x")
        with pytest.raises(ValidationError):
            service.findings.link_capa(finding.id, "")


class TestFromInspection:

    def test_one_finding_per_unsatisfactory_item(self, service):
        tpl = make_template(service, organization_id="org-a")
        result = complete_inspection(service, tpl,
                                     ["unsatisfactory", "unsatisfactory", "satisfactory"],
                                     organization_id="org-a")
        created = service.findings.create_from_inspection(result.inspection)

        assert len(created) == 2
        critical, normal = created
        assert critical.risk_level == RiskLevel.HIGH
        assert normal.risk_level == RiskLevel.MEDIUM
        assert all(f.inspection_id == result.inspection.id for f in created)
        assert all(f.organization_id == "org-a" for f in created)
        assert critical.checklist_item_id == result.inspection.checklist_items[0].id

    def test_repeat_call_creates_nothing_new(self, service):
        result = complete_inspection(service, make_template(service),
                                     ["unsatisfactory", "unsatisfactory", "satisfactory"])
        first = service.findings.create_from_inspection(result.inspection)
        assert service.findings.create_from_inspection(result.inspection) == []
        listed = service.findings.list_findings(inspection_id=result.inspection.id)
        assert sorted(f.id for f in listed) == sorted(f.id for f in first)

    def test_requires_completed_inspection(self, service):
        insp = start_inspection(service, make_template(service))
        with pytest.raises(PreconditionFailed):
            service.findings.create_from_inspection(insp)


class TestListFindings:

    def test_filters_and_sorting(self, service, clock):
        low = service.findings.create("low", "a", organization_id="org-a")
        crit = service.findings.create("critical", "b", organization_id="org-a")
        service.findings.create("high", "c", organization_id="org-b")

        listed = service.findings.list_findings(organization_id="org-a")
        assert [f.id for f in listed] == [crit.id, low.id]
        assert [f.id for f in service.findings.list_findings(risk_level="low")] == [low.id]

        clock.advance(days=2)
        overdue = service.findings.list_findings(organization_id="org-a", overdue=True)
        assert [f.id for f in overdue] == [crit.id]
