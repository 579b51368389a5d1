# ============================================================================
# COR-SAFE — FastAPI Application
# ============================================================================
# create_app() mounts every module's routes over one ComplianceService and
# maps engine errors onto HTTP responses ({"ok": False, ...}).
# ============================================================================

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import ComplianceError
from .eventstream.routes import register_eventstream_routes
from .findings import register_finding_routes
from .inspections import register_inspection_routes
from .metrics import register_metrics_routes
from .service import ComplianceService, build_service

logger = logging.getLogger(__name__)


def create_app(service: Optional[ComplianceService] = None) -> FastAPI:
    service = service or build_service()

    app = FastAPI(title="COR-SAFE Compliance")
    app.state.service = service

    @app.exception_handler(ComplianceError)
    async def _compliance_error_handler(request: Request, exc: ComplianceError):
        if exc.http_status >= 500:
            logger.error(f"[API] {request.method} {request.url.path}: {exc!r}")
        else:
            logger.info(f"[API] {request.method} {request.url.path} rejected: {exc.code} {exc.message}")
        return JSONResponse(exc.to_dict(), status_code=exc.http_status)

    @app.on_event("startup")
    async def _startup():
        if service.config.get("seed_default_templates"):
            service.templates.seed_default_templates()
        logger.info("[API] COR-SAFE startup complete")

    @app.get("/api/health")
    async def api_health():
        return {"ok": True, "service": "cor-safe"}

    register_inspection_routes(app, service)
    register_finding_routes(app, service)
    register_metrics_routes(app, service)
    register_eventstream_routes(app, service)
    return app
