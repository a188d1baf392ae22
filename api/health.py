"""
Health endpoints: a root liveness check and a readiness check that touches
the credential store.
"""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from auth.dependencies import get_settings_dep
from config.settings import Settings
from database.helpers import check_store
from utils.responses import error_response, success_response

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

logger = logging.getLogger(__name__)

root_router = APIRouter(tags=["health"])
router = APIRouter(tags=["health"])

_STARTED_AT = time.monotonic()


def _uptime_seconds() -> int:
    return int(time.monotonic() - _STARTED_AT)


def _memory_snapshot() -> Optional[Dict[str, str]]:
    if resource is None:
        return None
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    peak_mb = peak / (1024 * 1024) if sys.platform == "darwin" else peak / 1024
    return {"peak": f"{round(peak_mb)} MB"}


def _base_status(settings: Settings) -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "uptime": _uptime_seconds(),
        "version": settings.app_version,
    }


@root_router.get("/health")
async def liveness(settings: Settings = Depends(get_settings_dep)) -> JSONResponse:
    return success_response("SpaceMate API is running!", {"status": "ok", **_base_status(settings)})


@router.get("/health")
async def readiness(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
) -> JSONResponse:
    """Report service health; 503 when the database cannot be reached."""
    try:
        async with request.app.state.session_factory() as session:
            await check_store(session)
    except Exception as exc:
        logger.warning("Health check failed, database unreachable: %s", exc)
        return error_response(
            "Server health check failed - Database disconnected",
            ["database: disconnected"],
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    logger.debug("Health check requested - database connected")
    snapshot: Dict[str, Any] = {"status": "healthy", "database": "connected", **_base_status(settings)}
    memory = _memory_snapshot()
    if memory is not None:
        snapshot["memory"] = memory
    return success_response("Server is running healthy!", snapshot)
