"""System endpoints (health)."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from .. import schemas

router = APIRouter(prefix="", tags=["System"])

# Process start time for uptime calculation
_STARTUP_TIME = time.monotonic()


@router.get("/health", response_model=schemas.HealthResponse)
def get_health() -> schemas.HealthResponse:
    """Liveness & readiness check for Kubernetes probes. Does not touch the database."""
    return schemas.HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        uptime=time.monotonic() - _STARTUP_TIME,
    )
