"""
COR-SAFE Event Stream — Core Emitter

emit_event() is the single entry point the lifecycles use to publish
activity. It is fire-and-forget: a failing sink is logged and the calling
transition still succeeds.
"""
import logging
from typing import Optional, Dict

from ..clock import Clock
from .models import Event, EventSink

logger = logging.getLogger(__name__)


def _severity_for_event(event_type: str) -> str:
    """Default severity based on event type."""
    critical = {"finding.overdue"}
    warning = {"inspection.cancelled", "finding.created"}
    if event_type in critical:
        return "critical"
    if event_type in warning:
        return "warning"
    return "info"


def _category_for_event(event_type: str) -> str:
    """Category is the entity prefix of the event type."""
    prefix = event_type.split(".", 1)[0]
    if prefix in ("inspection", "finding", "template"):
        return prefix
    return "system"


def emit_event(
    sink: Optional[EventSink],
    event_type: str,
    entity_id: str,
    actor_id: Optional[str] = None,
    summary: Optional[str] = None,
    details: Optional[Dict] = None,
    organization_id: Optional[str] = None,
    clock: Optional[Clock] = None,
    severity: Optional[str] = None,
) -> Optional[Event]:
    """
    Publish an event to the sink.

    Returns the Event on success, None if there is no sink or it failed.
    """
    if sink is None:
        return None
    try:
        event = Event(
            type=event_type,
            entity_id=entity_id,
            actor_id=actor_id,
            summary=summary,
            details=details or {},
            category=_category_for_event(event_type),
            severity=severity or _severity_for_event(event_type),
            organization_id=organization_id,
            timestamp=clock.now() if clock else None,
        )
        sink.emit(event)
        return event
    except Exception as e:
        logger.error(f"[EventStream] emit_event failed for {event_type} {entity_id}: {e}")
        return None
