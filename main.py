# ============================================================================
# COR-SAFE — Compliance Backend Entry Point
# ============================================================================
# Run with:  uvicorn main:app --host 0.0.0.0 --port 8000
# Settings come from CORSAFE_<KEY> environment variables (see corsafe/config.py).
# ============================================================================

import logging

from corsafe.app import create_app
from corsafe.config import ComplianceConfig
from corsafe.service import build_service

# Stored overrides live in the same database file as the documents
config = ComplianceConfig(db_path=ComplianceConfig().get("db_path"))

logging.basicConfig(
    level=getattr(logging, str(config.get("log_level")).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = create_app(build_service(config))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
