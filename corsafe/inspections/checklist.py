"""
COR-SAFE Inspections — Checklist Engine

Snapshots template items into per-inspection instances and rolls their
statuses up into counts and an overall pass / conditional / fail result.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Callable, Iterable, List, Optional

from .models import (
    ChecklistItemInstance, InspectionTemplate, ItemStatus, OverallResult, new_id,
)

logger = logging.getLogger(__name__)

ResultRule = Callable[[List[ChecklistItemInstance]], OverallResult]


@dataclass
class ChecklistCounts:
    satisfactory: int = 0
    unsatisfactory: int = 0
    pending: int = 0
    na: int = 0

    @property
    def total(self) -> int:
        return self.satisfactory + self.unsatisfactory + self.pending + self.na

    def to_dict(self):
        d = asdict(self)
        d["total"] = self.total
        return d


def default_result_rule(items: List[ChecklistItemInstance]) -> OverallResult:
    """Critical unsatisfactory -> fail, any unsatisfactory -> conditional, else pass."""
    unsatisfactory = [i for i in items if i.status == ItemStatus.UNSATISFACTORY]
    if any(i.is_critical for i in unsatisfactory):
        return OverallResult.FAIL
    if unsatisfactory:
        return OverallResult.CONDITIONAL
    return OverallResult.PASS


class ChecklistEngine:
    """Checklist snapshotting and aggregation. The result rule is swappable."""

    def __init__(self, result_rule: Optional[ResultRule] = None):
        self.result_rule = result_rule or default_result_rule

    def snapshot(self, template: InspectionTemplate) -> List[ChecklistItemInstance]:
        """Copy template items into fresh pending instances, preserving order."""
        instances = []
        for idx, item in enumerate(template.checklist_items):
            instances.append(ChecklistItemInstance(
                id=f"{item.id or new_id('item')}-{idx}",
                section=item.section,
                item_text=item.item_text,
                expected_condition=item.expected_condition,
                is_critical=item.is_critical,
                status=ItemStatus.PENDING,
            ))
        return instances

    def aggregate(self, items: Iterable[ChecklistItemInstance]) -> ChecklistCounts:
        counts = ChecklistCounts()
        for item in items:
            if item.status == ItemStatus.SATISFACTORY:
                counts.satisfactory += 1
            elif item.status == ItemStatus.UNSATISFACTORY:
                counts.unsatisfactory += 1
            elif item.status == ItemStatus.NA:
                counts.na += 1
            else:
                counts.pending += 1
        return counts

    def compute_overall_result(self, items: List[ChecklistItemInstance]) -> OverallResult:
        result = self.result_rule(list(items))
        return OverallResult(result)

    @staticmethod
    def unsatisfactory_items(items: Iterable[ChecklistItemInstance]) -> List[ChecklistItemInstance]:
        return [i for i in items if i.status == ItemStatus.UNSATISFACTORY]
