"""
COR-SAFE Findings Module
Hazards found during inspections and their corrective-action workflow.
"""
from .routes import register_finding_routes
from .lifecycle import FindingLifecycle, is_overdue, corrected_on_time

__all__ = [
    "register_finding_routes",
    "FindingLifecycle",
    "is_overdue",
    "corrected_on_time",
]
