# ============================================================================
# COR-SAFE — Service Wiring
# ============================================================================
# Builds the catalog, lifecycles and metrics engine over one store, one
# clock and one event sink so hosts (API layer, scripts, tests) share a
# single consistent set of collaborators.
# ============================================================================

import logging
from dataclasses import dataclass
from typing import Optional

from .clock import Clock, SystemClock
from .config import ComplianceConfig
from .eventstream import EventSink, SQLiteEventSink
from .findings.lifecycle import FindingLifecycle, offsets_from_config
from .inspections.checklist import ChecklistEngine
from .inspections.lifecycle import InspectionLifecycle
from .inspections.templates import TemplateCatalog
from .metrics.engine import ComplianceMetricsEngine, ScoringPolicy
from .storage import DocumentStore, SQLiteDocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ComplianceService:
    config: ComplianceConfig
    store: DocumentStore
    clock: Clock
    events: Optional[EventSink]
    templates: TemplateCatalog
    inspections: InspectionLifecycle
    findings: FindingLifecycle
    metrics: ComplianceMetricsEngine


def build_service(
    config: Optional[ComplianceConfig] = None,
    store: Optional[DocumentStore] = None,
    clock: Optional[Clock] = None,
    events: Optional[EventSink] = None,
    checklist: Optional[ChecklistEngine] = None,
) -> ComplianceService:
    """Wire the engine. Anything not supplied is built from configuration."""
    config = config or ComplianceConfig()
    clock = clock or SystemClock()
    db_path = config.get("db_path")
    if store is None:
        store = SQLiteDocumentStore(db_path)
    if events is None:
        events = SQLiteEventSink(db_path)

    templates = TemplateCatalog(store, clock=clock, events=events)
    inspections = InspectionLifecycle(store, templates, clock=clock, events=events, checklist=checklist)
    findings = FindingLifecycle(store, clock=clock, events=events,
                                due_date_offsets=offsets_from_config(config))
    metrics = ComplianceMetricsEngine(inspections, findings, policy=ScoringPolicy.from_config(config))

    logger.info(f"[Service] compliance engine ready ({type(store).__name__}, {type(events).__name__})")
    return ComplianceService(
        config=config, store=store, clock=clock, events=events,
        templates=templates, inspections=inspections, findings=findings, metrics=metrics,
    )
