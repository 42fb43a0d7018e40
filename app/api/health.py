"""Health-check endpoint.

Docker Compose health checks, load balancers and the status view hit this
endpoint to verify the backend can reach its database.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.database import Database, get_database
from app.core.exceptions import DatabaseNotInitializedError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

HEALTHY_BODY = {"status": "ok", "db": "connected"}
UNHEALTHY_BODY = {"status": "error", "error": "Database unreachable"}


@router.get("/health")
async def health_check(database: Database | None = Depends(get_database)) -> JSONResponse:
    """Probe the database once and report the outcome.

    Returns 200 with ``{"status": "ok", "db": "connected"}`` when the probe
    succeeds, 500 with ``{"status": "error", "error": "Database unreachable"}``
    on any failure.  No retries.
    """
    try:
        if database is None:
            raise DatabaseNotInitializedError("No database handle on app.state")
        await database.verify()
    except Exception:
        logger.exception("Database health check failed")
        return JSONResponse(status_code=500, content=UNHEALTHY_BODY)

    return JSONResponse(status_code=200, content=HEALTHY_BODY)
