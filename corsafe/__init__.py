"""
COR-SAFE Compliance Engine
Inspection templates, scheduled inspections, corrective-action findings and
COR audit scoring over a versioned document store.
"""
from .errors import (
    ComplianceError,
    ValidationError,
    PreconditionFailed,
    InvalidTransition,
    NotFound,
    ConcurrentModification,
)
from .service import ComplianceService, build_service

__all__ = [
    "ComplianceError",
    "ValidationError",
    "PreconditionFailed",
    "InvalidTransition",
    "NotFound",
    "ConcurrentModification",
    "ComplianceService",
    "build_service",
]
