"""
COR-SAFE Compliance Metrics — Summary & COR Scoring

Read-side only: every number here is recomputed from persisted inspections
and findings against a caller-supplied `now`. Weights and thresholds live
in ScoringPolicy and are configuration, not regulatory constants.
"""
import datetime
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Iterable

from ..clock import parse_datetime
from ..config import ComplianceConfig
from ..findings.lifecycle import is_overdue, corrected_on_time
from ..findings.models import Finding, FindingStatus, RiskLevel, CLOSED_STATUSES
from ..inspections.lifecycle import calculated_status
from ..inspections.models import Inspection, InspectionStatus, OverallResult, OVERDUE

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass
class ScoringPolicy:
    weight_on_time_completion: float = 0.4
    weight_pass_rate: float = 0.3
    weight_correction_on_time: float = 0.3
    completion_grace_days: int = 0
    pass_rate_threshold: float = 0.8
    correction_rate_threshold: float = 0.8
    activity_window_days: int = 30

    @classmethod
    def from_config(cls, config: ComplianceConfig) -> "ScoringPolicy":
        return cls(
            weight_on_time_completion=float(config.get("weight_on_time_completion")),
            weight_pass_rate=float(config.get("weight_pass_rate")),
            weight_correction_on_time=float(config.get("weight_correction_on_time")),
            completion_grace_days=int(config.get("completion_grace_days")),
            pass_rate_threshold=float(config.get("pass_rate_threshold")),
            correction_rate_threshold=float(config.get("correction_rate_threshold")),
            activity_window_days=int(config.get("activity_window_days")),
        )


@dataclass
class InspectionSummary:
    scheduled_count: int = 0
    overdue_count: int = 0
    in_progress_count: int = 0
    completed_this_month: int = 0
    pass_rate: float = 0.0
    open_findings_count: int = 0
    overdue_findings_count: int = 0

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["pass_rate_pct"] = round(self.pass_rate * 100)
        return d


@dataclass
class Recommendation:
    priority: str
    message: str

    def to_dict(self) -> Dict:
        return {"priority": self.priority, "message": self.message}


@dataclass
class CORScore:
    total_score: int
    on_time_completion_rate: float
    pass_rate: float
    correction_on_time_rate: float
    recommendations: List[Recommendation] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "total_score": self.total_score,
            "on_time_completion_rate": round(self.on_time_completion_rate, 4),
            "pass_rate": round(self.pass_rate, 4),
            "correction_on_time_rate": round(self.correction_on_time_rate, 4),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


# ================================================================
# RATES
# ================================================================

def _completed(inspections: Iterable[Inspection]) -> List[Inspection]:
    return [i for i in inspections if i.status == InspectionStatus.COMPLETED]


def pass_rate(inspections: Iterable[Inspection]) -> float:
    """Share of completed-with-result inspections that passed. 0.0 when none."""
    with_result = [i for i in _completed(inspections) if i.overall_result is not None]
    if not with_result:
        return 0.0
    passed = sum(1 for i in with_result if i.overall_result == OverallResult.PASS)
    return passed / len(with_result)


def on_time_completion_rate(inspections: Iterable[Inspection], grace_days: int = 0) -> float:
    """Completed inspections finished by scheduled date + grace. 1.0 when none completed."""
    completed = [i for i in _completed(inspections) if i.completed_at is not None]
    if not completed:
        return 1.0
    grace = datetime.timedelta(days=grace_days)
    on_time = sum(1 for i in completed if i.completed_at <= i.scheduled_date + grace)
    return on_time / len(completed)


def correction_on_time_rate(findings: Iterable[Finding]) -> float:
    """Corrected/verified findings fixed by their due date over all non-open findings."""
    non_open = [f for f in findings if f.status != FindingStatus.OPEN]
    if not non_open:
        return 1.0
    on_time = sum(1 for f in non_open if f.status in CLOSED_STATUSES and corrected_on_time(f))
    return on_time / len(non_open)


# ================================================================
# SUMMARY
# ================================================================

def summarize(inspections: List[Inspection], findings: List[Finding],
              now: datetime.datetime) -> InspectionSummary:
    now = parse_datetime(now)
    summary = InspectionSummary()
    for insp in inspections:
        status = calculated_status(insp, now)
        if insp.status == InspectionStatus.SCHEDULED:
            summary.scheduled_count += 1
        if status == OVERDUE:
            summary.overdue_count += 1
        elif insp.status == InspectionStatus.IN_PROGRESS:
            summary.in_progress_count += 1
        elif insp.status == InspectionStatus.COMPLETED and insp.completed_at is not None:
            # Calendar month as seen in the caller's timezone
            local = insp.completed_at.astimezone(now.tzinfo)
            if (local.year, local.month) == (now.year, now.month):
                summary.completed_this_month += 1

    summary.pass_rate = pass_rate(inspections)
    summary.open_findings_count = sum(1 for f in findings if f.status != FindingStatus.VERIFIED)
    summary.overdue_findings_count = sum(1 for f in findings if is_overdue(f, now))
    return summary


# ================================================================
# COR SCORE
# ================================================================

def _recommendations(inspections: List[Inspection], findings: List[Finding],
                     now: datetime.datetime, policy: ScoringPolicy,
                     p_rate: float, c_rate: float) -> List[Recommendation]:
    recs = []

    overdue_critical = [f for f in findings if f.risk_level == RiskLevel.CRITICAL and is_overdue(f, now)]
    if overdue_critical:
        recs.append(Recommendation(
            "critical",
            f"{len(overdue_critical)} critical finding(s) are overdue. Correct immediately.",
        ))

    overdue_high = [f for f in findings if f.risk_level == RiskLevel.HIGH and is_overdue(f, now)]
    if overdue_high:
        recs.append(Recommendation(
            "high", f"{len(overdue_high)} high-risk finding(s) are past their due date.",
        ))

    completed = _completed(inspections)
    if completed and p_rate < policy.pass_rate_threshold:
        recs.append(Recommendation(
            "high",
            f"Inspection pass rate is {round(p_rate * 100)}%, below the "
            f"{round(policy.pass_rate_threshold * 100)}% target. Review recurring hazards.",
        ))

    overdue_inspections = [i for i in inspections if calculated_status(i, now) == OVERDUE]
    if overdue_inspections:
        recs.append(Recommendation(
            "high", f"{len(overdue_inspections)} scheduled inspection(s) are overdue.",
        ))

    window_start = now - datetime.timedelta(days=policy.activity_window_days)
    recent = [i for i in completed if i.completed_at is not None and i.completed_at >= window_start]
    if not recent:
        recs.append(Recommendation(
            "medium",
            f"No inspections completed in the last {policy.activity_window_days} days. "
            "Schedule regular workplace inspections.",
        ))

    if any(f.status != FindingStatus.OPEN for f in findings) and c_rate < policy.correction_rate_threshold:
        recs.append(Recommendation(
            "medium",
            f"Only {round(c_rate * 100)}% of findings were corrected on time.",
        ))

    return sorted(recs, key=lambda r: PRIORITY_ORDER.get(r.priority, 99))


def score_cor(inspections: List[Inspection], findings: List[Finding],
              now: datetime.datetime, policy: Optional[ScoringPolicy] = None) -> CORScore:
    policy = policy or ScoringPolicy()
    now = parse_datetime(now)

    t_rate = on_time_completion_rate(inspections, policy.completion_grace_days)
    p_rate = pass_rate(inspections)
    c_rate = correction_on_time_rate(findings)

    weights = (policy.weight_on_time_completion + policy.weight_pass_rate
               + policy.weight_correction_on_time)
    if weights <= 0:
        logger.warning("[Metrics] scoring weights sum to zero, score forced to 0")
        raw = 0.0
    else:
        raw = (t_rate * policy.weight_on_time_completion
               + p_rate * policy.weight_pass_rate
               + c_rate * policy.weight_correction_on_time) / weights

    total = max(0, min(100, int(round(raw * 100))))
    return CORScore(
        total_score=total,
        on_time_completion_rate=t_rate,
        pass_rate=p_rate,
        correction_on_time_rate=c_rate,
        recommendations=_recommendations(inspections, findings, now, policy, p_rate, c_rate),
    )


class ComplianceMetricsEngine:
    """Pulls an organization's inspections and findings and reports on them."""

    def __init__(self, inspections, findings, policy: Optional[ScoringPolicy] = None):
        self.inspections = inspections
        self.findings = findings
        self.policy = policy or ScoringPolicy()

    def _load(self, organization_id: Optional[str]):
        return (
            self.inspections.list_inspections(organization_id=organization_id),
            self.findings.list_findings(organization_id=organization_id),
        )

    def summarize(self, organization_id: Optional[str] = None,
                  now: Optional[datetime.datetime] = None) -> InspectionSummary:
        now = parse_datetime(now or self.inspections.clock.now())
        inspections, findings = self._load(organization_id)
        return summarize(inspections, findings, now)

    def score_cor(self, organization_id: Optional[str] = None,
                  now: Optional[datetime.datetime] = None) -> CORScore:
        now = parse_datetime(now or self.inspections.clock.now())
        inspections, findings = self._load(organization_id)
        return score_cor(inspections, findings, now, self.policy)

    def build_report(self, organization_id: Optional[str] = None,
                     now: Optional[datetime.datetime] = None) -> Dict:
        now = parse_datetime(now or self.inspections.clock.now())
        inspections, findings = self._load(organization_id)
        score = score_cor(inspections, findings, now, self.policy)
        logger.info(f"[Metrics] COR score for {organization_id or 'all'}: {score.total_score}")
        return {
            "generated_at": now.isoformat(),
            "organization_id": organization_id,
            "summary": summarize(inspections, findings, now).to_dict(),
            "cor": score.to_dict(),
        }
