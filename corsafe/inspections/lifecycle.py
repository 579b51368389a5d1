"""
COR-SAFE Inspections — Inspection Lifecycle

State machine: scheduled -> in_progress -> completed, or scheduled -> cancelled.
Every mutation is read -> transform -> compare-and-set write against the
document store; a stale write surfaces as ConcurrentModification and is
never retried here.
"""
import datetime
import logging
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

from ..clock import Clock, SystemClock, parse_datetime
from ..errors import (
    ValidationError, PreconditionFailed, InvalidTransition, NotFound, ConcurrentModification,
)
from ..eventstream import emit_event, EventSink
from ..storage import DocumentStore
from .checklist import ChecklistEngine, ChecklistCounts
from .models import (
    INSPECTIONS, OVERDUE, Inspection, InspectionStatus, ItemStatus, OverallResult, new_id,
)
from .templates import TemplateCatalog

logger = logging.getLogger(__name__)


def calculated_status(inspection: Inspection, now: datetime.datetime) -> str:
    """Read-time status: a scheduled inspection past its date reports 'overdue'."""
    now = parse_datetime(now)
    if (inspection.status == InspectionStatus.SCHEDULED
            and inspection.scheduled_date is not None
            and inspection.scheduled_date < now):
        return OVERDUE
    return inspection.status.value


@dataclass
class CompletionResult:
    """What complete() hands back so the caller can decide on findings."""
    inspection: Inspection
    overall_result: OverallResult
    counts: ChecklistCounts

    @property
    def unsatisfactory_count(self) -> int:
        return self.counts.unsatisfactory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inspection_id": self.inspection.id,
            "overall_result": self.overall_result.value,
            "unsatisfactory_count": self.unsatisfactory_count,
            "counts": self.counts.to_dict(),
        }


class InspectionLifecycle:
    """Schedules, runs and closes out inspections."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: TemplateCatalog,
        clock: Optional[Clock] = None,
        events: Optional[EventSink] = None,
        checklist: Optional[ChecklistEngine] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.clock = clock or SystemClock()
        self.events = events
        self.checklist = checklist or ChecklistEngine()

    # ============================================================
    # HELPERS
    # ============================================================

    def get(self, inspection_id: str) -> Inspection:
        doc = self.store.get(INSPECTIONS, inspection_id)
        if doc is None:
            raise NotFound(f"Inspection {inspection_id} not found",
                           entity_type="inspection", entity_id=inspection_id)
        return Inspection.from_dict(doc.data, version=doc.version)

    def _load(self, inspection_id: str, expected_version: Optional[int]) -> Inspection:
        inspection = self.get(inspection_id)
        if expected_version is not None and expected_version != inspection.version:
            raise ConcurrentModification(
                f"Inspection {inspection_id} changed since it was read",
                entity_type="inspection", entity_id=inspection_id,
                expected_version=expected_version, actual_version=inspection.version,
            )
        return inspection

    def _save(self, inspection: Inspection) -> Inspection:
        inspection.version = self.store.put(
            INSPECTIONS, inspection.id, inspection.to_dict(), expected_version=inspection.version,
        )
        return inspection

    def _emit(self, event_type: str, inspection: Inspection, actor_id: Optional[str] = None,
              summary: Optional[str] = None, details: Optional[Dict] = None):
        emit_event(self.events, event_type, inspection.id, actor_id=actor_id,
                   summary=summary, details=details,
                   organization_id=inspection.organization_id, clock=self.clock)

    @staticmethod
    def _require_status(inspection: Inspection, status: InspectionStatus, attempted: str):
        if inspection.status != status:
            raise PreconditionFailed(
                f"Cannot {attempted} inspection in status '{inspection.status.value}'",
                entity_type="inspection", entity_id=inspection.id,
                current_state=inspection.status.value, required_state=status.value,
                attempted=attempted,
            )

    # ============================================================
    # TRANSITIONS
    # ============================================================

    def schedule(
        self,
        template_id: str,
        scheduled_date,
        location: str = "",
        inspector_name: str = "",
        organization_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Inspection:
        if not template_id:
            raise ValidationError("Please select a template", field="template_id")
        try:
            template = self.catalog.get_template(template_id)
        except NotFound:
            raise ValidationError(f"Template {template_id} does not exist",
                                  field="template_id", template_id=template_id)
        if not template.is_active:
            raise ValidationError(f"Template {template_id} is not active",
                                  field="template_id", template_id=template_id)

        try:
            when = parse_datetime(scheduled_date)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid scheduled date: {scheduled_date!r}", field="scheduled_date")
        if when is None:
            raise ValidationError("Scheduled date is required", field="scheduled_date")

        inspection = Inspection(
            id=new_id("insp"),
            organization_id=organization_id if organization_id is not None else template.organization_id,
            template_id=template.id,
            template_name=template.name,
            inspection_type=template.type.value,
            status=InspectionStatus.SCHEDULED,
            scheduled_date=when,
            location=location or "",
            inspector_name=inspector_name or "",
            scheduled_by=actor_id,
            scheduled_at=self.clock.now(),
        )
        inspection.version = self.store.put(INSPECTIONS, inspection.id, inspection.to_dict(),
                                            expected_version=None)
        logger.info(f"[Inspections] scheduled {inspection.id} ({template.name}) for {when.date()}")
        self._emit("inspection.scheduled", inspection, actor_id,
                   summary=f"{template.name} scheduled for {when.date().isoformat()}")
        return inspection

    def start(self, inspection_id: str, inspector_id: Optional[str], inspector_name: str,
              expected_version: Optional[int] = None) -> Inspection:
        inspection = self._load(inspection_id, expected_version)
        self._require_status(inspection, InspectionStatus.SCHEDULED, "start")
        if not (inspector_name or "").strip():
            raise PreconditionFailed("Please enter inspector name",
                                     entity_type="inspection", entity_id=inspection_id,
                                     current_state=inspection.status.value, field="inspector_name")

        template = self.catalog.get_template(inspection.template_id)
        inspection.checklist_items = self.checklist.snapshot(template)
        inspection.status = InspectionStatus.IN_PROGRESS
        inspection.inspector_id = inspector_id
        inspection.inspector_name = inspector_name.strip()
        inspection.started_at = self.clock.now()
        self._save(inspection)

        logger.info(f"[Inspections] started {inspection.id} by {inspection.inspector_name} "
                    f"({len(inspection.checklist_items)} items)")
        self._emit("inspection.started", inspection, inspector_id,
                   summary=f"{inspection.template_name} started by {inspection.inspector_name}")
        return inspection

    def update_checklist_item(
        self,
        inspection_id: str,
        item_id: str,
        status: Optional[str] = None,
        notes: Optional[str] = None,
        photos: Optional[List[str]] = None,
        expected_version: Optional[int] = None,
    ) -> Inspection:
        inspection = self._load(inspection_id, expected_version)
        self._require_status(inspection, InspectionStatus.IN_PROGRESS, "update checklist of")

        item = inspection.find_item(item_id)
        if item is None:
            raise NotFound(f"Checklist item {item_id} not found on inspection {inspection_id}",
                           entity_type="checklist_item", entity_id=item_id, inspection_id=inspection_id)

        if status is not None:
            try:
                item.status = ItemStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid checklist item status: {status!r}",
                                      field="status", entity_id=item_id)
        if notes is not None:
            item.notes = notes
        if photos is not None:
            item.photos = list(photos)

        return self._save(inspection)

    def complete(self, inspection_id: str, completion_notes: str = "",
                 actor_id: Optional[str] = None,
                 expected_version: Optional[int] = None) -> CompletionResult:
        inspection = self._load(inspection_id, expected_version)
        self._require_status(inspection, InspectionStatus.IN_PROGRESS, "complete")

        counts = self.checklist.aggregate(inspection.checklist_items)
        if counts.pending > 0:
            raise PreconditionFailed(
                f"{counts.pending} items still pending. Complete all items before finishing.",
                entity_type="inspection", entity_id=inspection_id,
                current_state=inspection.status.value, pending_count=counts.pending,
            )

        result = self.checklist.compute_overall_result(inspection.checklist_items)
        inspection.overall_result = result
        inspection.status = InspectionStatus.COMPLETED
        inspection.completion_notes = completion_notes or ""
        inspection.completed_at = self.clock.now()
        self._save(inspection)

        logger.info(f"[Inspections] completed {inspection.id}: {result.value} "
                    f"({counts.unsatisfactory} unsatisfactory)")
        self._emit("inspection.completed", inspection, actor_id or inspection.inspector_id,
                   summary=f"{inspection.template_name} completed: {result.value}",
                   details={"overall_result": result.value, "counts": counts.to_dict()})
        return CompletionResult(inspection=inspection, overall_result=result, counts=counts)

    def cancel(self, inspection_id: str, reason: str, actor_id: Optional[str] = None,
               expected_version: Optional[int] = None) -> Inspection:
        inspection = self._load(inspection_id, expected_version)
        if inspection.status != InspectionStatus.SCHEDULED:
            raise InvalidTransition(
                f"Cannot cancel an inspection that is {inspection.status.value}",
                current_state=inspection.status.value, attempted="cancelled",
                entity_type="inspection", entity_id=inspection_id,
            )
        if not (reason or "").strip():
            raise ValidationError("A cancellation reason is required",
                                  field="reason", entity_id=inspection_id)

        inspection.status = InspectionStatus.CANCELLED
        inspection.cancel_reason = reason.strip()
        inspection.cancelled_at = self.clock.now()
        self._save(inspection)

        logger.info(f"[Inspections] cancelled {inspection.id}: {inspection.cancel_reason}")
        self._emit("inspection.cancelled", inspection, actor_id,
                   summary=f"{inspection.template_name} cancelled",
                   details={"reason": inspection.cancel_reason})
        return inspection

    def update_details(
        self,
        inspection_id: str,
        scheduled_date=None,
        location: Optional[str] = None,
        inspector_name: Optional[str] = None,
        actor_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Inspection:
        inspection = self._load(inspection_id, expected_version)
        self._require_status(inspection, InspectionStatus.SCHEDULED, "edit details of")

        changed = []
        if scheduled_date is not None:
            try:
                when = parse_datetime(scheduled_date)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid scheduled date: {scheduled_date!r}",
                                      field="scheduled_date", entity_id=inspection_id)
            if when is None:
                raise ValidationError("Scheduled date is required",
                                      field="scheduled_date", entity_id=inspection_id)
            inspection.scheduled_date = when
            changed.append("scheduled_date")
        if location is not None:
            inspection.location = location
            changed.append("location")
        if inspector_name is not None:
            inspection.inspector_name = inspector_name
            changed.append("inspector_name")

        if not changed:
            return inspection
        self._save(inspection)
        self._emit("inspection.updated", inspection, actor_id, details={"fields": changed})
        return inspection

    # ============================================================
    # QUERIES
    # ============================================================

    def calculated_status(self, inspection: Inspection, now: Optional[datetime.datetime] = None) -> str:
        return calculated_status(inspection, now or self.clock.now())

    def counts(self, inspection: Inspection) -> ChecklistCounts:
        return self.checklist.aggregate(inspection.checklist_items)

    def list_inspections(
        self,
        organization_id: Optional[str] = None,
        status: Optional[str] = None,
        inspection_type: Optional[str] = None,
        search: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[Inspection]:
        """List inspections newest-scheduled first. status may be 'overdue'."""
        def match(d):
            if organization_id is not None and d.get("organization_id") != organization_id:
                return False
            if inspection_type and d.get("inspection_type") != inspection_type:
                return False
            return True

        inspections = [Inspection.from_dict(d.data, version=d.version)
                       for d in self.store.query(INSPECTIONS, match)]

        if status and status != "all":
            now = parse_datetime(now or self.clock.now())
            inspections = [i for i in inspections if calculated_status(i, now) == status]

        if search:
            term = search.lower()
            inspections = [
                i for i in inspections
                if term in i.template_name.lower()
                or term in i.location.lower()
                or term in i.inspector_name.lower()
            ]

        return sorted(inspections, key=lambda i: i.scheduled_date, reverse=True)
