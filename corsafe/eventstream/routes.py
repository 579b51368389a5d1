"""
COR-SAFE Event Stream — API Routes
"""
from typing import Optional

from fastapi import FastAPI, Query

from .models import SQLiteEventSink, MemoryEventSink


def register_eventstream_routes(app: FastAPI, service):
    """Register the activity feed endpoint."""

    @app.get("/api/events")
    async def api_events(
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
        category: Optional[str] = None,
        event_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        organization_id: Optional[str] = None,
    ):
        """Paginated, filtered activity feed, newest first."""
        sink = service.events
        if isinstance(sink, SQLiteEventSink):
            events = sink.query_events(
                limit=limit, offset=offset, category=category, event_type=event_type,
                entity_id=entity_id, organization_id=organization_id,
            )
            total = sink.count_events(
                category=category, event_type=event_type,
                entity_id=entity_id, organization_id=organization_id,
            )
        elif isinstance(sink, MemoryEventSink):
            matched = [
                e.to_dict() for e in reversed(sink.events)
                if (not category or e.category == category)
                and (not event_type or e.type == event_type)
                and (not entity_id or e.entity_id == entity_id)
                and (not organization_id or e.organization_id == organization_id)
            ]
            total = len(matched)
            events = matched[offset:offset + limit]
        else:
            events, total = [], 0

        return {"ok": True, "events": events, "total": total, "limit": limit, "offset": offset}
