"""
COR-SAFE — Test Infrastructure (conftest.py)
=============================================
Provides:
  - A fixed clock starting 2025-01-01 09:00 UTC
  - In-memory store / event sink service (fast, isolated per test)
  - SQLite-backed service on a temp database
  - FastAPI TestClient over the in-memory service
  - Workflow helpers (template + completed inspection in one call)
"""

import os
import sys
import json
import datetime
import pytest

# Ensure project root is on path
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT_DIR)

from corsafe.clock import FixedClock, UTC
from corsafe.config import ComplianceConfig
from corsafe.eventstream import MemoryEventSink, SQLiteEventSink
from corsafe.service import build_service
from corsafe.storage import MemoryDocumentStore, SQLiteDocumentStore

START = datetime.datetime(2025, 1, 1, 9, 0, tzinfo=UTC)
ARTIFACTS_DIR = os.path.join(ROOT_DIR, "test_artifacts", "json_snapshots")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def events():
    return MemoryEventSink()


@pytest.fixture
def config():
    """Defaults only; the process environment is ignored."""
    return ComplianceConfig(environ={})


@pytest.fixture
def service(config, store, clock, events):
    return build_service(config=config, store=store, clock=clock, events=events)


@pytest.fixture
def sqlite_path(tmp_path):
    return str(tmp_path / "corsafe_test.db")


@pytest.fixture
def sqlite_service(sqlite_path, clock):
    """Service over a real SQLite file (documents + event_stream + config)."""
    config = ComplianceConfig(db_path=sqlite_path, overrides={"db_path": sqlite_path}, environ={})
    return build_service(config=config, clock=clock)


@pytest.fixture
def client(service):
    """FastAPI TestClient; startup seeds the default templates."""
    from starlette.testclient import TestClient
    from corsafe.app import create_app
    with TestClient(create_app(service), raise_server_exceptions=False) as c:
        yield c


# ============================================================================
# Workflow helpers
# ============================================================================

BASIC_ITEMS = [
    {"section": "Emergency", "item_text": "Fire extinguisher charged", "is_critical": True},
    {"section": "Housekeeping", "item_text": "Aisles clear", "is_critical": False},
    {"section": "PPE", "item_text": "Hard hats available", "is_critical": False},
]


def make_template(service, name="Shop Floor Walkthrough", items=None, organization_id=None):
    return service.templates.create_template(
        name=name,
        checklist_items=items if items is not None else BASIC_ITEMS,
        organization_id=organization_id,
    )


def start_inspection(service, template, scheduled_date="2025-01-10", organization_id=None):
    insp = service.inspections.schedule(
        template.id, scheduled_date, location="Main Shop",
        inspector_name="Pat Lee", organization_id=organization_id,
    )
    return service.inspections.start(insp.id, inspector_id="u-pat", inspector_name="Pat Lee")


def complete_inspection(service, template, statuses, scheduled_date="2025-01-10",
                        organization_id=None):
    """Schedule, start, fill every item with `statuses` (in order) and complete."""
    insp = start_inspection(service, template, scheduled_date, organization_id)
    for item, status in zip(insp.checklist_items, statuses):
        insp = service.inspections.update_checklist_item(insp.id, item.id, status=status)
    return service.inspections.complete(insp.id)


# ============================================================================
# Artifact helpers
# ============================================================================

def save_artifact(name, content):
    """Save a JSON snapshot for manual review of API payloads."""
    path = os.path.join(ARTIFACTS_DIR, name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        json.dump(content, f, indent=2, default=str)
    return path
