"""
COR-SAFE — Compliance Metrics Tests
"""

import datetime

import pytest

from corsafe.metrics.engine import (
    ScoringPolicy, pass_rate, on_time_completion_rate, correction_on_time_rate,
    summarize, score_cor,
)
from tests.conftest import START, make_template, start_inspection, complete_inspection


class TestRates:

    def test_empty_denominators(self):
        assert pass_rate([]) == 0.0
        assert on_time_completion_rate([]) == 1.0
        assert correction_on_time_rate([]) == 1.0

    def test_pass_rate_ignores_unfinished(self, service):
        tpl = make_template(service)
        passed = complete_inspection(service, tpl, ["satisfactory"] * 3).inspection
        failed = complete_inspection(service, tpl, ["unsatisfactory"] + ["satisfactory"] * 2).inspection
        running = start_inspection(service, tpl)
        assert pass_rate([passed, failed, running]) == 0.5

    def test_on_time_completion_with_grace(self, service):
        tpl = make_template(service)
        late = complete_inspection(service, tpl, ["satisfactory"] * 3,
                                   scheduled_date="2024-12-30").inspection
        early = complete_inspection(service, tpl, ["satisfactory"] * 3).inspection
        assert on_time_completion_rate([late, early]) == 0.5
        assert on_time_completion_rate([late, early], grace_days=3) == 1.0

    def test_correction_rate_counts_in_progress_against(self, service, clock):
        on_time = service.findings.create("low", "a")
        late = service.findings.create("critical", "b")
        working = service.findings.create("medium", "c")
        service.findings.create("medium", "still open")
        service.findings.set_status(working.id, "in_progress")
        service.findings.set_status(on_time.id, "corrected", corrected_by="Sam")
        clock.advance(days=5)
        service.findings.set_status(late.id, "corrected", corrected_by="Sam")

        findings = service.findings.list_findings()
        assert correction_on_time_rate(findings) == pytest.approx(1 / 3)


class TestSummary:

    def test_counts(self, service, clock):
        tpl = make_template(service)
        service.inspections.schedule(tpl.id, "2025-01-10")
        service.inspections.schedule(tpl.id, "2024-12-20")
        start_inspection(service, tpl)
        complete_inspection(service, tpl, ["satisfactory"] * 3)
        service.findings.create("critical", "Spill")
        verified = service.findings.create("low", "Done")
        service.findings.set_status(verified.id, "corrected", corrected_by="Sam")
        service.findings.set_status(verified.id, "verified", verified_by="Alex")
        clock.advance(days=2)

        summary = service.metrics.summarize()
        assert summary.scheduled_count == 2
        assert summary.overdue_count == 1
        assert summary.in_progress_count == 1
        assert summary.completed_this_month == 1
        assert summary.pass_rate == 1.0
        assert summary.open_findings_count == 1
        assert summary.overdue_findings_count == 1
        assert summary.to_dict()["pass_rate_pct"] == 100

    def test_completed_last_month_not_counted(self, service, clock):
        tpl = make_template(service)
        complete_inspection(service, tpl, ["satisfactory"] * 3)
        clock.set("2025-02-03T00:00:00Z")
        assert service.metrics.summarize().completed_this_month == 0

    def test_no_completed_inspections_pass_rate_zero(self):
        assert summarize([], [], START).pass_rate == 0.0

    def test_month_follows_caller_timezone(self, service, clock):
        clock.set("2025-01-31T23:30:00Z")
        complete_inspection(service, make_template(service), ["satisfactory"] * 3)
        inspections = service.inspections.list_inspections()

        plus_two = datetime.timezone(datetime.timedelta(hours=2))
        february = datetime.datetime(2025, 2, 1, 10, 0, tzinfo=plus_two)
        assert summarize(inspections, [], february).completed_this_month == 1
        january = datetime.datetime(2025, 1, 31, 23, 45, tzinfo=datetime.timezone.utc)
        assert summarize(inspections, [], january).completed_this_month == 1

    def test_naive_now_treated_as_utc(self, service):
        complete_inspection(service, make_template(service), ["satisfactory"] * 3)
        service.findings.create("critical", "Spill")
        naive = datetime.datetime(2025, 1, 20)
        inspections = service.inspections.list_inspections()
        findings = service.findings.list_findings()

        summary = summarize(inspections, findings, naive)
        assert summary.completed_this_month == 1
        assert summary.overdue_findings_count == 1
        assert 0 <= score_cor(inspections, findings, naive).total_score <= 100
        report = service.metrics.build_report(now=naive)
        assert report["generated_at"].startswith("2025-01-20T00:00:00")


class TestCORScore:

    def test_perfect_record(self, service):
        complete_inspection(service, make_template(service), ["satisfactory"] * 3)
        score = service.metrics.score_cor()
        assert score.total_score == 100
        assert score.recommendations == []

    def test_empty_organization(self):
        score = score_cor([], [], START)
        assert score.total_score == 70
        assert [r.priority for r in score.recommendations] == ["medium"]

    def test_custom_weights_are_normalized(self, service):
        tpl = make_template(service)
        complete_inspection(service, tpl, ["satisfactory"] * 3, scheduled_date="2024-12-30")
        inspections = service.inspections.list_inspections()

        only_timeliness = ScoringPolicy(weight_on_time_completion=2.0, weight_pass_rate=0.0,
                                        weight_correction_on_time=0.0)
        assert score_cor(inspections, [], START, only_timeliness).total_score == 0

        only_pass = ScoringPolicy(weight_on_time_completion=0.0, weight_pass_rate=5.0,
                                  weight_correction_on_time=0.0)
        assert score_cor(inspections, [], START, only_pass).total_score == 100

    def test_zero_weights_score_zero(self):
        policy = ScoringPolicy(0.0, 0.0, 0.0)
        assert score_cor([], [], START, policy).total_score == 0

    def test_score_always_in_range(self, service, clock):
        tpl = make_template(service)
        complete_inspection(service, tpl, ["unsatisfactory"] * 3, scheduled_date="2024-12-01")
        f = service.findings.create("critical", "x")
        clock.advance(days=10)
        service.findings.set_status(f.id, "corrected", corrected_by="Sam")
        score = service.metrics.score_cor()
        assert 0 <= score.total_score <= 100
        assert score.total_score == 0

    def test_recommendations_prioritized(self, service, clock):
        tpl = make_template(service)
        complete_inspection(service, tpl, ["unsatisfactory"] + ["satisfactory"] * 2)
        service.inspections.schedule(tpl.id, "2025-01-02")
        service.findings.create("critical", "Spill")
        service.findings.create("high", "Guard missing")
        clock.advance(days=10)

        recs = service.metrics.score_cor().recommendations
        priorities = [r.priority for r in recs]
        assert priorities[0] == "critical"
        assert priorities == sorted(priorities, key=["critical", "high", "medium", "low"].index)
        messages = " ".join(r.message for r in recs)
        assert "critical finding" in messages
        assert "pass rate" in messages
        assert "overdue" in messages

    def test_stale_activity_recommendation(self, service, clock):
        complete_inspection(service, make_template(service), ["satisfactory"] * 3)
        clock.advance(days=31)
        recs = service.metrics.score_cor().recommendations
        assert [r.priority for r in recs] == ["medium"]

    def test_report_shape(self, service):
        complete_inspection(service, make_template(service, organization_id="org-a"),
                            ["satisfactory"] * 3, organization_id="org-a")
        report = service.metrics.build_report("org-a")
        assert report["organization_id"] == "org-a"
        assert report["summary"]["completed_this_month"] == 1
        assert report["cor"]["total_score"] == 100
        assert report["generated_at"] == START.isoformat()
