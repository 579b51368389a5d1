"""
COR-SAFE Event Stream Module
Activity-feed events emitted by the inspection and finding lifecycles.
"""
from .emitter import emit_event
from .models import Event, EventSink, MemoryEventSink, SQLiteEventSink

__all__ = [
    "emit_event",
    "Event",
    "EventSink",
    "MemoryEventSink",
    "SQLiteEventSink",
]
