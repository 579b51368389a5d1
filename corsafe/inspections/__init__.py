"""
COR-SAFE Inspections Module
Checklist templates, inspection scheduling and the inspection state machine.
"""
from .routes import register_inspection_routes
from .templates import TemplateCatalog, DEFAULT_TEMPLATES
from .checklist import ChecklistEngine, ChecklistCounts, default_result_rule
from .lifecycle import InspectionLifecycle, CompletionResult, calculated_status

__all__ = [
    "register_inspection_routes",
    "TemplateCatalog",
    "DEFAULT_TEMPLATES",
    "ChecklistEngine",
    "ChecklistCounts",
    "default_result_rule",
    "InspectionLifecycle",
    "CompletionResult",
    "calculated_status",
]
