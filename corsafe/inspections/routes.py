"""
COR-SAFE Inspections — API Routes
"""
from typing import Optional

from fastapi import FastAPI, Request, Query

from .lifecycle import calculated_status


def _template_payload(template):
    d = template.to_dict()
    d["version"] = template.version
    return d


def _inspection_payload(service, inspection):
    d = inspection.to_dict()
    d["version"] = inspection.version
    d["calculated_status"] = calculated_status(inspection, service.clock.now())
    d["counts"] = service.inspections.counts(inspection).to_dict()
    return d


def register_inspection_routes(app: FastAPI, service):
    """Register template and inspection endpoints."""

    templates = service.templates
    inspections = service.inspections

    # ============================================================
    # TEMPLATES
    # ============================================================

    @app.get("/api/inspections/templates")
    async def api_get_templates(
        organization_id: Optional[str] = None,
        include_inactive: bool = False,
    ):
        items = templates.list_templates(organization_id, include_inactive=include_inactive)
        return {"ok": True, "templates": [_template_payload(t) for t in items]}

    @app.post("/api/inspections/templates")
    async def api_create_template(request: Request):
        data = await request.json()
        tpl = templates.create_template(
            name=data.get("name", ""),
            checklist_items=data.get("checklist_items") or [],
            organization_id=data.get("organization_id"),
            type=data.get("type", "workplace"),
            frequency=data.get("frequency", "monthly"),
            description=data.get("description", ""),
            actor_id=data.get("actor_id"),
        )
        return {"ok": True, "template": _template_payload(tpl)}

    @app.post("/api/inspections/templates/seed")
    async def api_seed_templates(request: Request):
        data = await request.json()
        created = templates.seed_default_templates(data.get("organization_id"))
        return {"ok": True, "created": [_template_payload(t) for t in created]}

    @app.get("/api/inspections/templates/{template_id}")
    async def api_get_template(template_id: str):
        return {"ok": True, "template": _template_payload(templates.get_template(template_id))}

    @app.put("/api/inspections/templates/{template_id}")
    async def api_update_template(template_id: str, request: Request):
        data = await request.json()
        expected_version = data.pop("version", None)
        actor_id = data.pop("actor_id", None)
        tpl = templates.update_template(template_id, data, expected_version=expected_version,
                                        actor_id=actor_id)
        return {"ok": True, "template": _template_payload(tpl)}

    @app.post("/api/inspections/templates/{template_id}/deactivate")
    async def api_deactivate_template(template_id: str, request: Request):
        data = await request.json()
        tpl = templates.deactivate_template(template_id, actor_id=data.get("actor_id"))
        return {"ok": True, "template": _template_payload(tpl)}

    # ============================================================
    # INSPECTIONS
    # ============================================================

    @app.get("/api/inspections")
    async def api_get_inspections(
        organization_id: Optional[str] = None,
        status: Optional[str] = None,
        type: Optional[str] = Query(None),
        search: Optional[str] = None,
    ):
        items = inspections.list_inspections(
            organization_id=organization_id, status=status,
            inspection_type=type, search=search,
        )
        return {"ok": True, "inspections": [_inspection_payload(service, i) for i in items]}

    @app.post("/api/inspections")
    async def api_schedule_inspection(request: Request):
        data = await request.json()
        insp = inspections.schedule(
            template_id=data.get("template_id", ""),
            scheduled_date=data.get("scheduled_date"),
            location=data.get("location", ""),
            inspector_name=data.get("inspector_name", ""),
            organization_id=data.get("organization_id"),
            actor_id=data.get("actor_id"),
        )
        return {"ok": True, "inspection": _inspection_payload(service, insp)}

    @app.get("/api/inspections/{inspection_id}")
    async def api_get_inspection(inspection_id: str):
        return {"ok": True, "inspection": _inspection_payload(service, inspections.get(inspection_id))}

    @app.put("/api/inspections/{inspection_id}")
    async def api_update_inspection(inspection_id: str, request: Request):
        data = await request.json()
        insp = inspections.update_details(
            inspection_id,
            scheduled_date=data.get("scheduled_date"),
            location=data.get("location"),
            inspector_name=data.get("inspector_name"),
            actor_id=data.get("actor_id"),
            expected_version=data.get("version"),
        )
        return {"ok": True, "inspection": _inspection_payload(service, insp)}

    @app.post("/api/inspections/{inspection_id}/start")
    async def api_start_inspection(inspection_id: str, request: Request):
        data = await request.json()
        insp = inspections.start(
            inspection_id,
            inspector_id=data.get("inspector_id"),
            inspector_name=data.get("inspector_name", ""),
            expected_version=data.get("version"),
        )
        return {"ok": True, "inspection": _inspection_payload(service, insp)}

    @app.put("/api/inspections/{inspection_id}/items/{item_id}")
    async def api_update_item(inspection_id: str, item_id: str, request: Request):
        data = await request.json()
        insp = inspections.update_checklist_item(
            inspection_id, item_id,
            status=data.get("status"),
            notes=data.get("notes"),
            photos=data.get("photos"),
            expected_version=data.get("version"),
        )
        return {"ok": True, "inspection": _inspection_payload(service, insp)}

    @app.post("/api/inspections/{inspection_id}/complete")
    async def api_complete_inspection(inspection_id: str, request: Request):
        data = await request.json()
        result = inspections.complete(
            inspection_id,
            completion_notes=data.get("completion_notes", data.get("notes", "")),
            actor_id=data.get("actor_id"),
            expected_version=data.get("version"),
        )
        return {
            "ok": True,
            "result": result.to_dict(),
            "inspection": _inspection_payload(service, result.inspection),
        }

    @app.post("/api/inspections/{inspection_id}/cancel")
    async def api_cancel_inspection(inspection_id: str, request: Request):
        data = await request.json()
        insp = inspections.cancel(
            inspection_id,
            reason=data.get("reason", ""),
            actor_id=data.get("actor_id"),
            expected_version=data.get("version"),
        )
        return {"ok": True, "inspection": _inspection_payload(service, insp)}
