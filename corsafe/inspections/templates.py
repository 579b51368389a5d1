"""
COR-SAFE Inspections — Template Catalog

Read-mostly provider of checklist definitions. Templates are never deleted,
only deactivated, so historical inspections keep resolving.
"""
import logging
from typing import Optional, List, Dict, Any

from ..clock import Clock, SystemClock
from ..errors import ValidationError, NotFound, ConcurrentModification
from ..eventstream import emit_event, EventSink
from ..storage import DocumentStore
from .models import (
    TEMPLATES, ChecklistItemDef, InspectionTemplate, InspectionType,
    InspectionFrequency, new_id,
)

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "description", "type", "frequency", "checklist_items")


# ================================================================
# DEFAULT TEMPLATES (COR Element 5)
# ================================================================

DEFAULT_TEMPLATES = [
    {
        "name": "Monthly Workplace Inspection",
        "description": "General workplace hazard inspection of premises and work practices",
        "type": "workplace",
        "frequency": "monthly",
        "checklist_items": [
            {"section": "Housekeeping", "item_text": "Walkways and aisles clear of obstructions",
             "expected_condition": "No trip hazards, clear 1m path", "is_critical": False},
            {"section": "Housekeeping", "item_text": "Waste and scrap disposed of properly",
             "expected_condition": "Bins emptied, no accumulation", "is_critical": False},
            {"section": "Emergency", "item_text": "Fire extinguishers accessible and charged",
             "expected_condition": "Gauge in green, tag current", "is_critical": True},
            {"section": "Emergency", "item_text": "Emergency exits unobstructed and signed",
             "expected_condition": "Exit signs lit, doors open freely", "is_critical": True},
            {"section": "Emergency", "item_text": "First aid kit stocked",
             "expected_condition": "Contents match inventory list", "is_critical": False},
            {"section": "Electrical", "item_text": "Cords and plugs in good condition",
             "expected_condition": "No frayed cords or missing ground pins", "is_critical": True},
            {"section": "PPE", "item_text": "Required PPE available and in use",
             "expected_condition": "Workers wearing task-appropriate PPE", "is_critical": False},
        ],
    },
    {
        "name": "Equipment Pre-Use Inspection",
        "description": "Condition check before operating tools or equipment",
        "type": "equipment",
        "frequency": "per_use",
        "checklist_items": [
            {"section": "General", "item_text": "Guards and shields in place",
             "expected_condition": "All guards fitted and secure", "is_critical": True},
            {"section": "General", "item_text": "No visible damage or leaks",
             "expected_condition": "Housing intact, no fluid leaks", "is_critical": False},
            {"section": "Controls", "item_text": "Emergency stop functions",
             "expected_condition": "Unit stops immediately when pressed", "is_critical": True},
            {"section": "Controls", "item_text": "Operating controls labelled",
             "expected_condition": "Labels legible", "is_critical": False},
        ],
    },
    {
        "name": "Vehicle Inspection",
        "description": "Fleet vehicle condition check",
        "type": "vehicle",
        "frequency": "weekly",
        "checklist_items": [
            {"section": "Exterior", "item_text": "Tires inflated with adequate tread",
             "expected_condition": "Tread depth above 3mm", "is_critical": True},
            {"section": "Exterior", "item_text": "Lights and signals working",
             "expected_condition": "All lamps functional", "is_critical": True},
            {"section": "Interior", "item_text": "Seat belts functional",
             "expected_condition": "Latch and retract properly", "is_critical": True},
            {"section": "Interior", "item_text": "Emergency kit on board",
             "expected_condition": "Kit present and sealed", "is_critical": False},
        ],
    },
]


def _validate_items(raw_items: Any) -> List[ChecklistItemDef]:
    if not raw_items:
        raise ValidationError("Add at least one checklist item", field="checklist_items")
    items = []
    for idx, raw in enumerate(raw_items):
        item = raw if isinstance(raw, ChecklistItemDef) else ChecklistItemDef.from_dict(raw)
        if not (item.item_text or "").strip():
            raise ValidationError(
                "All checklist items must have a description",
                field="checklist_items", index=idx,
            )
        items.append(item)
    return items


def _validate_choice(enum_cls, value, field_name):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name, value=value)


class TemplateCatalog:
    """Checklist template storage over the document store."""

    def __init__(self, store: DocumentStore, clock: Optional[Clock] = None,
                 events: Optional[EventSink] = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.events = events

    # ============================================================
    # READ
    # ============================================================

    def get_template(self, template_id: str) -> InspectionTemplate:
        doc = self.store.get(TEMPLATES, template_id)
        if doc is None:
            raise NotFound(f"Template {template_id} not found",
                           entity_type="template", entity_id=template_id)
        return InspectionTemplate.from_dict(doc.data, version=doc.version)

    def list_templates(self, organization_id: Optional[str] = None,
                       include_inactive: bool = False) -> List[InspectionTemplate]:
        def match(d):
            if organization_id is not None and d.get("organization_id") != organization_id:
                return False
            return include_inactive or d.get("is_active", True)

        docs = self.store.query(TEMPLATES, match)
        templates = [InspectionTemplate.from_dict(d.data, version=d.version) for d in docs]
        return sorted(templates, key=lambda t: t.name.lower())

    def get_active_templates(self, organization_id: Optional[str] = None) -> List[InspectionTemplate]:
        return self.list_templates(organization_id, include_inactive=False)

    # ============================================================
    # WRITE
    # ============================================================

    def create_template(
        self,
        name: str,
        checklist_items: List[Any],
        organization_id: Optional[str] = None,
        type: str = "workplace",
        frequency: str = "monthly",
        description: str = "",
        actor_id: Optional[str] = None,
    ) -> InspectionTemplate:
        if not (name or "").strip():
            raise ValidationError("Template name is required", field="name")
        now = self.clock.now()
        template = InspectionTemplate(
            id=new_id("tpl"),
            organization_id=organization_id,
            name=name.strip(),
            description=description or "",
            type=_validate_choice(InspectionType, type, "type"),
            frequency=_validate_choice(InspectionFrequency, frequency, "frequency"),
            checklist_items=_validate_items(checklist_items),
            is_active=True,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        template.version = self.store.put(TEMPLATES, template.id, template.to_dict(), expected_version=None)
        logger.info(f"[Templates] created {template.id} '{template.name}' "
                    f"({len(template.checklist_items)} items)")
        emit_event(self.events, "template.created", template.id, actor_id=actor_id,
                   summary=f"Template {template.name} created",
                   organization_id=organization_id, clock=self.clock)
        return template

    def update_template(self, template_id: str, fields: Dict[str, Any],
                        expected_version: Optional[int] = None,
                        actor_id: Optional[str] = None) -> InspectionTemplate:
        template = self.get_template(template_id)
        if expected_version is not None and expected_version != template.version:
            raise ConcurrentModification(
                f"Template {template_id} changed since it was read",
                entity_type="template", entity_id=template_id,
                expected_version=expected_version, actual_version=template.version,
            )

        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}",
                                  entity_id=template_id, fields=sorted(unknown))

        if "name" in fields:
            if not (fields["name"] or "").strip():
                raise ValidationError("Template name is required", field="name", entity_id=template_id)
            template.name = fields["name"].strip()
        if "description" in fields:
            template.description = fields["description"] or ""
        if "type" in fields:
            template.type = _validate_choice(InspectionType, fields["type"], "type")
        if "frequency" in fields:
            template.frequency = _validate_choice(InspectionFrequency, fields["frequency"], "frequency")
        if "checklist_items" in fields:
            template.checklist_items = _validate_items(fields["checklist_items"])
        template.updated_at = self.clock.now()

        template.version = self.store.put(TEMPLATES, template.id, template.to_dict(),
                                          expected_version=template.version)
        logger.info(f"[Templates] updated {template.id}")
        emit_event(self.events, "template.updated", template.id, actor_id=actor_id,
                   details={"fields": sorted(fields)},
                   organization_id=template.organization_id, clock=self.clock)
        return template

    def deactivate_template(self, template_id: str, actor_id: Optional[str] = None) -> InspectionTemplate:
        template = self.get_template(template_id)
        if not template.is_active:
            return template
        template.is_active = False
        template.updated_at = self.clock.now()
        template.version = self.store.put(TEMPLATES, template.id, template.to_dict(),
                                          expected_version=template.version)
        logger.info(f"[Templates] deactivated {template.id}")
        emit_event(self.events, "template.deactivated", template.id, actor_id=actor_id,
                   organization_id=template.organization_id, clock=self.clock)
        return template

    def seed_default_templates(self, organization_id: Optional[str] = None) -> List[InspectionTemplate]:
        """Create the default templates when an organization has none at all."""
        if self.list_templates(organization_id, include_inactive=True):
            return []
        created = [
            self.create_template(organization_id=organization_id, actor_id="system", **tpl)
            for tpl in DEFAULT_TEMPLATES
        ]
        logger.info(f"[Templates] seeded {len(created)} default templates for {organization_id or 'default org'}")
        return created
