"""
COR-SAFE Findings — Finding Lifecycle

open -> in_progress -> corrected -> verified, with open -> corrected allowed
directly. Due dates are derived from the risk level at creation only; later
edits overwrite the stored due date verbatim and never recompute it.
Overdue-ness is a pure function of the finding and a caller-supplied now.
"""
import datetime
import logging
from typing import Optional, List, Dict, Any

from ..clock import Clock, SystemClock, parse_datetime
from ..config import ComplianceConfig
from ..errors import (
    ValidationError, PreconditionFailed, InvalidTransition, NotFound, ConcurrentModification,
)
from ..eventstream import emit_event, EventSink
from ..inspections.checklist import ChecklistEngine
from ..inspections.models import InspectionStatus, new_id
from ..storage import DocumentStore
from .models import FINDINGS, Finding, FindingStatus, RiskLevel, CLOSED_STATUSES

logger = logging.getLogger(__name__)

DUE_DATE_OFFSETS = {
    RiskLevel.CRITICAL: datetime.timedelta(days=1),
    RiskLevel.HIGH: datetime.timedelta(days=7),
    RiskLevel.MEDIUM: datetime.timedelta(days=30),
    RiskLevel.LOW: datetime.timedelta(days=90),
}

ALLOWED_TRANSITIONS = {
    FindingStatus.OPEN: (FindingStatus.IN_PROGRESS, FindingStatus.CORRECTED),
    FindingStatus.IN_PROGRESS: (FindingStatus.CORRECTED,),
    FindingStatus.CORRECTED: (FindingStatus.VERIFIED,),
    FindingStatus.VERIFIED: (),
}

_EDITABLE_FIELDS = (
    "description", "location", "hazard_category", "risk_level",
    "assigned_to", "corrective_action", "due_date",
)


def offsets_from_config(config: ComplianceConfig) -> Dict[RiskLevel, datetime.timedelta]:
    return {
        level: datetime.timedelta(days=int(config.get(f"due_days_{level.value}")))
        for level in RiskLevel
    }


def is_overdue(finding: Finding, now: datetime.datetime) -> bool:
    """Open or in-progress and past its due date."""
    now = parse_datetime(now)
    if finding.status in CLOSED_STATUSES or finding.due_date is None:
        return False
    return finding.due_date < now


def corrected_on_time(finding: Finding) -> bool:
    if finding.corrected_date is None or finding.due_date is None:
        return False
    return finding.corrected_date <= finding.due_date


def _risk_level(value) -> RiskLevel:
    try:
        return RiskLevel(value)
    except ValueError:
        raise ValidationError(f"Invalid risk level: {value!r}", field="risk_level", value=value)


class FindingLifecycle:
    """Creates findings and walks them through correction and verification."""

    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Clock] = None,
        events: Optional[EventSink] = None,
        due_date_offsets: Optional[Dict[RiskLevel, datetime.timedelta]] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.events = events
        self.due_date_offsets = dict(DUE_DATE_OFFSETS)
        if due_date_offsets:
            self.due_date_offsets.update(due_date_offsets)

    # ============================================================
    # HELPERS
    # ============================================================

    def get(self, finding_id: str) -> Finding:
        doc = self.store.get(FINDINGS, finding_id)
        if doc is None:
            raise NotFound(f"Finding {finding_id} not found",
                           entity_type="finding", entity_id=finding_id)
        return Finding.from_dict(doc.data, version=doc.version)

    def _load(self, finding_id: str, expected_version: Optional[int]) -> Finding:
        finding = self.get(finding_id)
        if expected_version is not None and expected_version != finding.version:
            raise ConcurrentModification(
                f"Finding {finding_id} changed since it was read",
                entity_type="finding", entity_id=finding_id,
                expected_version=expected_version, actual_version=finding.version,
            )
        return finding

    def _save(self, finding: Finding) -> Finding:
        finding.updated_at = self.clock.now()
        finding.version = self.store.put(FINDINGS, finding.id, finding.to_dict(),
                                         expected_version=finding.version)
        return finding

    def _emit(self, event_type: str, finding: Finding, actor_id: Optional[str] = None,
              summary: Optional[str] = None, details: Optional[Dict] = None):
        emit_event(self.events, event_type, finding.id, actor_id=actor_id,
                   summary=summary, details=details,
                   organization_id=finding.organization_id, clock=self.clock)

    def derive_due_date(self, risk_level, created_at: datetime.datetime) -> datetime.datetime:
        return created_at + self.due_date_offsets[_risk_level(risk_level)]

    def is_overdue(self, finding: Finding, now: Optional[datetime.datetime] = None) -> bool:
        return is_overdue(finding, now or self.clock.now())

    # ============================================================
    # CREATE
    # ============================================================

    def create(
        self,
        risk_level,
        description: str,
        location: str = "",
        hazard_category: str = "",
        inspection_id: Optional[str] = None,
        assigned_to: str = "",
        corrective_action: str = "",
        due_date=None,
        organization_id: Optional[str] = None,
        checklist_item_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Finding:
        if not (description or "").strip():
            raise ValidationError("Finding description is required", field="description")
        level = _risk_level(risk_level)
        now = self.clock.now()

        if due_date is None or due_date == "":
            due = self.derive_due_date(level, now)
        else:
            try:
                due = parse_datetime(due_date)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid due date: {due_date!r}", field="due_date")

        finding = Finding(
            id=new_id("fnd"),
            organization_id=organization_id,
            inspection_id=inspection_id,
            checklist_item_id=checklist_item_id,
            description=description.strip(),
            location=location or "",
            hazard_category=hazard_category or "",
            risk_level=level,
            status=FindingStatus.OPEN,
            due_date=due,
            assigned_to=assigned_to or "",
            corrective_action=corrective_action or "",
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        finding.version = self.store.put(FINDINGS, finding.id, finding.to_dict(), expected_version=None)

        logger.info(f"[Findings] created {finding.id} ({level.value}) due {due.date()}")
        self._emit("finding.created", finding, actor_id,
                   summary=f"{level.value.title()} finding: {finding.description}",
                   details={"risk_level": level.value, "inspection_id": inspection_id})
        return finding

    def create_from_inspection(
        self,
        inspection,
        critical_risk_level=RiskLevel.HIGH,
        default_risk_level=RiskLevel.MEDIUM,
        actor_id: Optional[str] = None,
    ) -> List[Finding]:
        """
        One finding per unsatisfactory checklist item of a completed inspection.

        Items that already have a finding are skipped, so repeating the call
        after a partial failure only creates what is missing.
        """
        if inspection.status != InspectionStatus.COMPLETED:
            raise PreconditionFailed(
                "Findings can only be raised from a completed inspection",
                entity_type="inspection", entity_id=inspection.id,
                current_state=inspection.status.value,
            )
        existing = {
            d.data.get("checklist_item_id")
            for d in self.store.query(FINDINGS, lambda d: d.get("inspection_id") == inspection.id)
        }
        created = []
        for item in ChecklistEngine.unsatisfactory_items(inspection.checklist_items):
            if item.id in existing:
                continue
            description = item.item_text
            if item.notes:
                description = f"{item.item_text}: {item.notes}"
            created.append(self.create(
                risk_level=critical_risk_level if item.is_critical else default_risk_level,
                description=description,
                location=inspection.location,
                hazard_category=item.section,
                inspection_id=inspection.id,
                checklist_item_id=item.id,
                organization_id=inspection.organization_id,
                actor_id=actor_id,
            ))
        return created

    # ============================================================
    # EDIT / TRANSITIONS
    # ============================================================

    def update(self, finding_id: str, fields: Dict[str, Any], actor_id: Optional[str] = None,
               expected_version: Optional[int] = None) -> Finding:
        """Edit an open or in-progress finding. A supplied due_date replaces the stored one."""
        finding = self._load(finding_id, expected_version)
        if finding.is_closed:
            raise PreconditionFailed(
                f"Finding {finding_id} is {finding.status.value} and can no longer be edited",
                entity_type="finding", entity_id=finding_id, current_state=finding.status.value,
            )

        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}",
                                  entity_id=finding_id, fields=sorted(unknown))

        if "description" in fields:
            if not (fields["description"] or "").strip():
                raise ValidationError("Finding description is required",
                                      field="description", entity_id=finding_id)
            finding.description = fields["description"].strip()
        if "risk_level" in fields:
            finding.risk_level = _risk_level(fields["risk_level"])
        if fields.get("due_date"):
            try:
                finding.due_date = parse_datetime(fields["due_date"])
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid due date: {fields['due_date']!r}",
                                      field="due_date", entity_id=finding_id)
        for key in ("location", "hazard_category", "assigned_to", "corrective_action"):
            if key in fields:
                setattr(finding, key, fields[key] or "")

        self._save(finding)
        self._emit("finding.updated", finding, actor_id, details={"fields": sorted(fields)})
        return finding

    def set_status(
        self,
        finding_id: str,
        new_status,
        corrected_by: Optional[str] = None,
        verified_by: Optional[str] = None,
        actor_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Finding:
        finding = self._load(finding_id, expected_version)
        try:
            target = FindingStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid finding status: {new_status!r}",
                                  field="status", entity_id=finding_id)

        if target not in ALLOWED_TRANSITIONS[finding.status]:
            raise InvalidTransition(
                f"Cannot move finding from {finding.status.value} to {target.value}",
                current_state=finding.status.value, attempted=target.value,
                entity_type="finding", entity_id=finding_id,
            )

        now = self.clock.now()
        actor = actor_id
        if target == FindingStatus.CORRECTED:
            if not (corrected_by or "").strip():
                raise ValidationError("Enter name of person who corrected this",
                                      field="corrected_by", entity_id=finding_id)
            finding.corrected_by = corrected_by.strip()
            finding.corrected_date = now
            actor = actor or finding.corrected_by
        elif target == FindingStatus.VERIFIED:
            if not (verified_by or "").strip():
                raise ValidationError("Enter name of person verifying correction",
                                      field="verified_by", entity_id=finding_id)
            finding.verified_by = verified_by.strip()
            finding.verified_date = now
            actor = actor or finding.verified_by

        previous = finding.status
        finding.status = target
        self._save(finding)

        logger.info(f"[Findings] {finding.id}: {previous.value} -> {target.value}")
        self._emit("finding.status_changed", finding, actor,
                   summary=f"Finding {previous.value} -> {target.value}",
                   details={"from": previous.value, "to": target.value})
        return finding

    def link_capa(self, finding_id: str, capa_id: str, actor_id: Optional[str] = None,
                  expected_version: Optional[int] = None) -> Finding:
        """Attach a CAPA reference. Allowed in every status, but only once."""
        finding = self._load(finding_id, expected_version)
        if not (capa_id or "").strip():
            raise ValidationError("CAPA ID is required", field="capa_id", entity_id=finding_id)
        if finding.linked_capa_id:
            raise PreconditionFailed(
                f"Finding {finding_id} is already linked to CAPA {finding.linked_capa_id}",
                entity_type="finding", entity_id=finding_id,
                linked_capa_id=finding.linked_capa_id,
            )
        finding.linked_capa_id = capa_id.strip()
        self._save(finding)
        self._emit("finding.capa_linked", finding, actor_id, details={"capa_id": finding.linked_capa_id})
        return finding

    # ============================================================
    # QUERIES
    # ============================================================

    def list_findings(
        self,
        organization_id: Optional[str] = None,
        status: Optional[str] = None,
        risk_level: Optional[str] = None,
        inspection_id: Optional[str] = None,
        overdue: bool = False,
        now: Optional[datetime.datetime] = None,
    ) -> List[Finding]:
        def match(d):
            if organization_id is not None and d.get("organization_id") != organization_id:
                return False
            if status and status != "all" and d.get("status") != status:
                return False
            if risk_level and d.get("risk_level") != risk_level:
                return False
            if inspection_id and d.get("inspection_id") != inspection_id:
                return False
            return True

        findings = [Finding.from_dict(d.data, version=d.version)
                    for d in self.store.query(FINDINGS, match)]
        if overdue:
            now = parse_datetime(now or self.clock.now())
            findings = [f for f in findings if is_overdue(f, now)]
        return sorted(findings, key=lambda f: f.due_date)

    def check_overdue(self, now: Optional[datetime.datetime] = None,
                      organization_id: Optional[str] = None) -> List[Finding]:
        """Emit finding.overdue for every overdue finding and return them."""
        now = parse_datetime(now or self.clock.now())
        overdue = self.list_findings(organization_id=organization_id, overdue=True, now=now)
        for finding in overdue:
            days = (now - finding.due_date).days
            self._emit("finding.overdue", finding,
                       summary=f"Overdue since {finding.due_date.date().isoformat()}",
                       details={"risk_level": finding.risk_level.value, "days_overdue": days})
        if overdue:
            logger.warning(f"[Findings] {len(overdue)} overdue finding(s)")
        return overdue
