"""
COR-SAFE Compliance Metrics — API Routes
"""
from typing import Optional

from fastapi import FastAPI


def register_metrics_routes(app: FastAPI, service):
    """Register summary / COR score endpoints."""

    metrics = service.metrics

    @app.get("/api/compliance/summary")
    async def api_compliance_summary(organization_id: Optional[str] = None):
        summary = metrics.summarize(organization_id)
        return {"ok": True, "summary": summary.to_dict()}

    @app.get("/api/compliance/cor-score")
    async def api_cor_score(organization_id: Optional[str] = None):
        score = metrics.score_cor(organization_id)
        return {"ok": True, "cor": score.to_dict()}

    @app.get("/api/compliance/report")
    async def api_compliance_report(organization_id: Optional[str] = None):
        return {"ok": True, "report": metrics.build_report(organization_id)}
