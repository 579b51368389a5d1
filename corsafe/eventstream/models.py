"""
COR-SAFE Event Stream — Event Record & Sinks
"""
import sqlite3
import json
import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

DB_PATH = "corsafe.db"


@dataclass
class Event:
    """One activity-feed entry emitted by the engine."""
    type: str
    entity_id: str
    actor_id: Optional[str] = None
    summary: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    category: str = "system"
    severity: str = "info"
    organization_id: Optional[str] = None
    timestamp: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "summary": self.summary,
            "details": self.details,
            "category": self.category,
            "severity": self.severity,
            "organization_id": self.organization_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


class EventSink(ABC):
    """Destination for engine events. Delivery is the sink's business."""

    @abstractmethod
    def emit(self, event: Event) -> None:
        pass


class MemoryEventSink(EventSink):
    """Keeps events in a list, newest last."""

    def __init__(self):
        self.events: List[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [e.type for e in self.events]

    def of_type(self, event_type: str) -> List[Event]:
        return [e for e in self.events if e.type == event_type]


class SQLiteEventSink(EventSink):
    """Writes events to the event_stream table."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = str(db_path)
        self.init_schema()

    def _get_conn(self):
        conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self):
        """Create event_stream table if it doesn't exist."""
        conn = self._get_conn()
        c = conn.cursor()
        c.execute("""
            CREATE TABLE IF NOT EXISTS event_stream (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                event_type TEXT NOT NULL,
                category TEXT DEFAULT 'system',
                severity TEXT DEFAULT 'info',
                entity_id TEXT,
                organization_id TEXT,
                actor_id TEXT,
                summary TEXT,
                details_json TEXT
            )
        """)
        for col in ("timestamp", "entity_id", "event_type", "category"):
            c.execute(f"CREATE INDEX IF NOT EXISTS idx_es_{col} ON event_stream ({col})")
        conn.commit()
        conn.close()

    def emit(self, event: Event) -> None:
        self.insert_event(event)

    def insert_event(self, event: Event) -> int:
        """Insert an event and return its row ID."""
        ts = event.timestamp or datetime.datetime.now(datetime.timezone.utc)
        conn = self._get_conn()
        c = conn.cursor()
        c.execute("""
            INSERT INTO event_stream
                (timestamp, event_type, category, severity, entity_id, organization_id,
                 actor_id, summary, details_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            ts.isoformat(), event.type, event.category, event.severity,
            event.entity_id, event.organization_id, event.actor_id, event.summary,
            json.dumps(event.details) if event.details else None,
        ))
        event_id = c.lastrowid
        conn.commit()
        conn.close()
        return event_id

    def query_events(
        self,
        limit: int = 50,
        offset: int = 0,
        category: Optional[str] = None,
        event_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        since: Optional[str] = None,
    ) -> List[Dict]:
        """Query events with filters, newest first."""
        conditions = []
        params = []

        if category:
            conditions.append("category = ?")
            params.append(category)
        if event_type:
            conditions.append("event_type = ?")
            params.append(event_type)
        if entity_id:
            conditions.append("entity_id = ?")
            params.append(entity_id)
        if organization_id:
            conditions.append("organization_id = ?")
            params.append(organization_id)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""

        conn = self._get_conn()
        rows = conn.execute(
            f"SELECT * FROM event_stream{where} ORDER BY id DESC LIMIT ? OFFSET ?",
            params + [limit, offset]
        ).fetchall()
        conn.close()

        events = []
        for r in rows:
            d = dict(r)
            d["type"] = d.pop("event_type")
            d["details"] = json.loads(d.pop("details_json")) if d.get("details_json") else {}
            events.append(d)
        return events

    def count_events(self, **filters) -> int:
        """Count events matching filters."""
        conditions = []
        params = []
        for key in ("category", "event_type", "entity_id", "organization_id"):
            val = filters.get(key)
            if val is not None:
                conditions.append(f"{key} = ?")
                params.append(val)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        conn = self._get_conn()
        row = conn.execute(f"SELECT COUNT(*) as cnt FROM event_stream{where}", params).fetchone()
        conn.close()
        return row["cnt"] if row else 0
