"""
Health check endpoint.

GET /health — pings MongoDB. The credential store is the only hard
dependency, so a failed ping reports "unhealthy" with 503.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

router = APIRouter(tags=["health"])
log = get_logger(__name__)


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except PyMongoError as e:
        log.warning("health_check_failed", dependency="mongodb", error=str(e))
        checks["mongodb"] = "error"
        overall = "unhealthy"

    status_code = 503 if overall == "unhealthy" else 200
    body = HealthResponse(status=overall, checks=checks)
    return JSONResponse(status_code=status_code, content=body.model_dump())
