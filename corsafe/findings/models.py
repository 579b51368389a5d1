"""
COR-SAFE Findings — Data Models
"""
import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any

from ..clock import parse_datetime, format_datetime

FINDINGS = "findings"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FindingStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CORRECTED = "corrected"
    VERIFIED = "verified"


# Statuses after which a finding no longer counts against its due date
CLOSED_STATUSES = (FindingStatus.CORRECTED, FindingStatus.VERIFIED)


@dataclass
class Finding:
    """A recorded deficiency that needs corrective action."""
    id: str
    description: str
    risk_level: RiskLevel
    due_date: datetime.datetime
    status: FindingStatus = FindingStatus.OPEN
    organization_id: Optional[str] = None
    inspection_id: Optional[str] = None
    checklist_item_id: Optional[str] = None
    location: str = ""
    hazard_category: str = ""
    assigned_to: str = ""
    corrective_action: str = ""
    corrected_by: Optional[str] = None
    corrected_date: Optional[datetime.datetime] = None
    verified_by: Optional[str] = None
    verified_date: Optional[datetime.datetime] = None
    linked_capa_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    version: Optional[int] = None

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "inspection_id": self.inspection_id,
            "checklist_item_id": self.checklist_item_id,
            "description": self.description,
            "location": self.location,
            "hazard_category": self.hazard_category,
            "risk_level": self.risk_level.value,
            "status": self.status.value,
            "due_date": format_datetime(self.due_date),
            "assigned_to": self.assigned_to,
            "corrective_action": self.corrective_action,
            "corrected_by": self.corrected_by,
            "corrected_date": format_datetime(self.corrected_date),
            "verified_by": self.verified_by,
            "verified_date": format_datetime(self.verified_date),
            "linked_capa_id": self.linked_capa_id,
            "created_by": self.created_by,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], version: Optional[int] = None) -> "Finding":
        return cls(
            id=data["id"],
            organization_id=data.get("organization_id"),
            inspection_id=data.get("inspection_id"),
            checklist_item_id=data.get("checklist_item_id"),
            description=data.get("description", ""),
            location=data.get("location") or "",
            hazard_category=data.get("hazard_category") or "",
            risk_level=RiskLevel(data.get("risk_level") or "medium"),
            status=FindingStatus(data.get("status") or "open"),
            due_date=parse_datetime(data.get("due_date")),
            assigned_to=data.get("assigned_to") or "",
            corrective_action=data.get("corrective_action") or "",
            corrected_by=data.get("corrected_by"),
            corrected_date=parse_datetime(data.get("corrected_date")),
            verified_by=data.get("verified_by"),
            verified_date=parse_datetime(data.get("verified_date")),
            linked_capa_id=data.get("linked_capa_id"),
            created_by=data.get("created_by"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            version=version,
        )
