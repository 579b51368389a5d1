"""
COR-SAFE Inspections — Data Models

Templates, scheduled inspections and the per-inspection checklist item
snapshots. Stored as JSON documents; datetimes round-trip as ISO strings.
"""
import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any

from ..clock import parse_datetime, format_datetime

TEMPLATES = "inspection_templates"
INSPECTIONS = "inspections"


class InspectionType(str, Enum):
    WORKPLACE = "workplace"
    EQUIPMENT = "equipment"
    VEHICLE = "vehicle"
    SITE = "site"
    EMERGENCY = "emergency"
    PPE = "ppe"
    PREFLIGHT = "preflight"


class InspectionFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    PER_USE = "per_use"


class InspectionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Read-time only, never stored
OVERDUE = "overdue"


class ItemStatus(str, Enum):
    PENDING = "pending"
    SATISFACTORY = "satisfactory"
    UNSATISFACTORY = "unsatisfactory"
    NA = "na"


class OverallResult(str, Enum):
    PASS = "pass"
    CONDITIONAL = "conditional"
    FAIL = "fail"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


@dataclass
class ChecklistItemDef:
    """One line of a template checklist."""
    id: str
    item_text: str
    section: str = "General"
    expected_condition: str = ""
    is_critical: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "section": self.section,
            "item_text": self.item_text,
            "expected_condition": self.expected_condition,
            "is_critical": self.is_critical,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChecklistItemDef":
        return cls(
            id=data.get("id") or new_id("item"),
            item_text=data.get("item_text") or data.get("item") or "",
            section=data.get("section") or "General",
            expected_condition=data.get("expected_condition") or "",
            is_critical=bool(data.get("is_critical", False)),
        )


@dataclass
class InspectionTemplate:
    id: str
    name: str
    checklist_items: List[ChecklistItemDef]
    organization_id: Optional[str] = None
    description: str = ""
    type: InspectionType = InspectionType.WORKPLACE
    frequency: InspectionFrequency = InspectionFrequency.MONTHLY
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    version: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "description": self.description,
            "type": _enum_value(self.type),
            "frequency": _enum_value(self.frequency),
            "checklist_items": [i.to_dict() for i in self.checklist_items],
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], version: Optional[int] = None) -> "InspectionTemplate":
        return cls(
            id=data["id"],
            organization_id=data.get("organization_id"),
            name=data.get("name", ""),
            description=data.get("description", ""),
            type=InspectionType(data.get("type") or "workplace"),
            frequency=InspectionFrequency(data.get("frequency") or "monthly"),
            checklist_items=[ChecklistItemDef.from_dict(i) for i in data.get("checklist_items", [])],
            is_active=bool(data.get("is_active", True)),
            created_by=data.get("created_by"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            version=version,
        )


@dataclass
class ChecklistItemInstance:
    """A per-inspection copy of a template item, with its recorded outcome."""
    id: str
    item_text: str
    section: str = "General"
    expected_condition: str = ""
    is_critical: bool = False
    status: ItemStatus = ItemStatus.PENDING
    notes: str = ""
    photos: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "section": self.section,
            "item_text": self.item_text,
            "expected_condition": self.expected_condition,
            "is_critical": self.is_critical,
            "status": _enum_value(self.status),
            "notes": self.notes,
            "photos": list(self.photos),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChecklistItemInstance":
        return cls(
            id=data["id"],
            item_text=data.get("item_text", ""),
            section=data.get("section") or "General",
            expected_condition=data.get("expected_condition") or "",
            is_critical=bool(data.get("is_critical", False)),
            status=ItemStatus(data.get("status") or "pending"),
            notes=data.get("notes") or "",
            photos=list(data.get("photos") or []),
        )


@dataclass
class Inspection:
    id: str
    template_id: str
    template_name: str
    scheduled_date: datetime.datetime
    status: InspectionStatus = InspectionStatus.SCHEDULED
    organization_id: Optional[str] = None
    inspection_type: Optional[str] = None
    location: str = ""
    inspector_id: Optional[str] = None
    inspector_name: str = ""
    checklist_items: List[ChecklistItemInstance] = field(default_factory=list)
    completion_notes: str = ""
    overall_result: Optional[OverallResult] = None
    cancel_reason: Optional[str] = None
    scheduled_by: Optional[str] = None
    scheduled_at: Optional[datetime.datetime] = None
    started_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    cancelled_at: Optional[datetime.datetime] = None
    version: Optional[int] = None

    def find_item(self, item_id: str) -> Optional[ChecklistItemInstance]:
        for item in self.checklist_items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "template_id": self.template_id,
            "template_name": self.template_name,
            "inspection_type": self.inspection_type,
            "status": _enum_value(self.status),
            "scheduled_date": format_datetime(self.scheduled_date),
            "location": self.location,
            "inspector_id": self.inspector_id,
            "inspector_name": self.inspector_name,
            "checklist_items": [i.to_dict() for i in self.checklist_items],
            "completion_notes": self.completion_notes,
            "overall_result": _enum_value(self.overall_result),
            "cancel_reason": self.cancel_reason,
            "scheduled_by": self.scheduled_by,
            "scheduled_at": format_datetime(self.scheduled_at),
            "started_at": format_datetime(self.started_at),
            "completed_at": format_datetime(self.completed_at),
            "cancelled_at": format_datetime(self.cancelled_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], version: Optional[int] = None) -> "Inspection":
        result = data.get("overall_result")
        return cls(
            id=data["id"],
            organization_id=data.get("organization_id"),
            template_id=data["template_id"],
            template_name=data.get("template_name", ""),
            inspection_type=data.get("inspection_type"),
            status=InspectionStatus(data.get("status") or "scheduled"),
            scheduled_date=parse_datetime(data.get("scheduled_date")),
            location=data.get("location") or "",
            inspector_id=data.get("inspector_id"),
            inspector_name=data.get("inspector_name") or "",
            checklist_items=[ChecklistItemInstance.from_dict(i) for i in data.get("checklist_items", [])],
            completion_notes=data.get("completion_notes") or "",
            overall_result=OverallResult(result) if result else None,
            cancel_reason=data.get("cancel_reason"),
            scheduled_by=data.get("scheduled_by"),
            scheduled_at=parse_datetime(data.get("scheduled_at")),
            started_at=parse_datetime(data.get("started_at")),
            completed_at=parse_datetime(data.get("completed_at")),
            cancelled_at=parse_datetime(data.get("cancelled_at")),
            version=version,
        )
