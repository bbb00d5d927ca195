"""Health & Readiness — is the purchase tool able to serve a purchase page.

Invariants:
    - GET /health/ returns 200 whenever the process is up (liveness)
    - GET /health/ready returns 503 only when the record store is unreachable
    - Image lookup is reported but never fails readiness: items are created
      without an image when it is down

Design Decisions:
    - Image lookup "configured" is judged from settings only: probing the remote
      search API on every readiness poll would spend its rate limit
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from purchase_tool.config import Settings, get_settings
from purchase_tool.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

PLACEHOLDER_ACCESS_KEY = "unsplash-placeholder"


def image_lookup_status(settings: Settings) -> str:
    if not settings.image_lookup_access_key or (
        settings.image_lookup_access_key == PLACEHOLDER_ACCESS_KEY
    ):
        return "not_configured"
    return "configured"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "item-purchase-tool"}


@router.get("/ready")
async def readiness_check():
    manager = database.db_manager
    record_store_ok = await manager.health_check() if manager else False
    checks = {
        "record_store": "healthy" if record_store_ok else "unavailable",
        "image_lookup": image_lookup_status(get_settings()),
    }
    if not record_store_ok:
        logger.warning("Readiness failed: record store unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
