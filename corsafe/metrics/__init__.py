"""
COR-SAFE Compliance Metrics Module
Inspection summary counts and the weighted COR audit score.
"""
from .routes import register_metrics_routes
from .engine import ComplianceMetricsEngine, ScoringPolicy, CORScore, InspectionSummary

__all__ = [
    "register_metrics_routes",
    "ComplianceMetricsEngine",
    "ScoringPolicy",
    "CORScore",
    "InspectionSummary",
]
