"""
Health check endpoints.

Used by load balancers, orchestrators, and monitoring systems
to verify service availability.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.dependencies import get_completion_client, get_scanner
from app.config import get_settings
from app.services.body_scanner import BodyScanner
from app.services.completion import CompletionClient

router = APIRouter()


class HealthStatus(BaseModel):
    """Health check response model."""

    status: str
    timestamp: datetime
    version: str
    checks: dict[str, str]


@router.get("/health", response_model=HealthStatus)
async def health_check(
    scanner: BodyScanner = Depends(get_scanner),
    client: CompletionClient = Depends(get_completion_client),
) -> HealthStatus:
    """
    Comprehensive health check.

    Reports on:
    - Completion API (API key configured)
    - Camera (open, closed, or last error)
    - Scanning loop

    Only a missing API key marks the service degraded; the camera is
    optional for the diet and food endpoints.
    """
    settings = get_settings()
    checks = {}

    checks["completion"] = (
        "healthy" if getattr(client, "is_configured", True) else "unhealthy: API key not set"
    )

    camera_error = scanner.state.camera_error
    if camera_error:
        checks["camera"] = f"unavailable: {camera_error}"
    else:
        checks["camera"] = "open" if getattr(scanner.camera, "is_open", False) else "closed"

    checks["scanner"] = "running" if scanner.is_scanning else "idle"

    status = "healthy" if checks["completion"] == "healthy" else "degraded"

    return HealthStatus(
        status=status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        checks=checks,
    )


@router.get("/health/live")
async def liveness():
    """
    Kubernetes liveness probe.

    Simple check that the service is running.
    Does not check dependencies.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(client: CompletionClient = Depends(get_completion_client)):
    """
    Kubernetes readiness probe.

    Ready once the completion API is configured.
    """
    if getattr(client, "is_configured", True):
        return {"status": "ready"}
    return JSONResponse(status_code=503, content={"status": "not ready"})
