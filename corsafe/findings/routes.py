"""
COR-SAFE Findings — API Routes
"""
from typing import Optional

from fastapi import FastAPI, Request

from .lifecycle import is_overdue


def _finding_payload(service, finding):
    d = finding.to_dict()
    d["version"] = finding.version
    d["is_overdue"] = is_overdue(finding, service.clock.now())
    return d


def register_finding_routes(app: FastAPI, service):
    """Register corrective-action finding endpoints."""

    findings = service.findings

    @app.get("/api/findings")
    async def api_get_findings(
        organization_id: Optional[str] = None,
        status: Optional[str] = None,
        risk_level: Optional[str] = None,
        inspection_id: Optional[str] = None,
        overdue: bool = False,
    ):
        items = findings.list_findings(
            organization_id=organization_id, status=status, risk_level=risk_level,
            inspection_id=inspection_id, overdue=overdue,
        )
        return {"ok": True, "findings": [_finding_payload(service, f) for f in items]}

    @app.post("/api/findings")
    async def api_create_finding(request: Request):
        data = await request.json()
        finding = findings.create(
            risk_level=data.get("risk_level", "medium"),
            description=data.get("description", ""),
            location=data.get("location", ""),
            hazard_category=data.get("hazard_category", ""),
            inspection_id=data.get("inspection_id"),
            assigned_to=data.get("assigned_to", ""),
            corrective_action=data.get("corrective_action", ""),
            due_date=data.get("due_date"),
            organization_id=data.get("organization_id"),
            actor_id=data.get("actor_id"),
        )
        return {"ok": True, "finding": _finding_payload(service, finding)}

    @app.post("/api/findings/from-inspection/{inspection_id}")
    async def api_findings_from_inspection(inspection_id: str, request: Request):
        data = await request.json()
        inspection = service.inspections.get(inspection_id)
        created = findings.create_from_inspection(
            inspection,
            critical_risk_level=data.get("critical_risk_level", "high"),
            default_risk_level=data.get("default_risk_level", "medium"),
            actor_id=data.get("actor_id"),
        )
        return {"ok": True, "findings": [_finding_payload(service, f) for f in created]}

    @app.post("/api/findings/check-overdue")
    async def api_check_overdue(request: Request):
        data = await request.json()
        overdue = findings.check_overdue(organization_id=data.get("organization_id"))
        return {"ok": True, "overdue": [_finding_payload(service, f) for f in overdue]}

    @app.get("/api/findings/{finding_id}")
    async def api_get_finding(finding_id: str):
        return {"ok": True, "finding": _finding_payload(service, findings.get(finding_id))}

    @app.put("/api/findings/{finding_id}")
    async def api_update_finding(finding_id: str, request: Request):
        data = await request.json()
        expected_version = data.pop("version", None)
        actor_id = data.pop("actor_id", None)
        finding = findings.update(finding_id, data, actor_id=actor_id,
                                  expected_version=expected_version)
        return {"ok": True, "finding": _finding_payload(service, finding)}

    @app.post("/api/findings/{finding_id}/status")
    async def api_finding_status(finding_id: str, request: Request):
        data = await request.json()
        finding = findings.set_status(
            finding_id,
            data.get("status", ""),
            corrected_by=data.get("corrected_by"),
            verified_by=data.get("verified_by"),
            actor_id=data.get("actor_id"),
            expected_version=data.get("version"),
        )
        return {"ok": True, "finding": _finding_payload(service, finding)}

    @app.post("/api/findings/{finding_id}/capa")
    async def api_link_capa(finding_id: str, request: Request):
        data = await request.json()
        finding = findings.link_capa(finding_id, data.get("capa_id", ""),
                                     actor_id=data.get("actor_id"))
        return {"ok": True, "finding": _finding_payload(service, finding)}
