"""Health routes - Service status and readiness checks."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from vanguard.api.deps import get_listing_service
from vanguard.core.config import settings
from vanguard.schemas.api import HealthResponse
from vanguard.services.listing_service import ListingService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(service: ListingService = Depends(get_listing_service)):
    """
    Health check endpoint for load balancer and container health checks.

    Reports "degraded" when the last listing load failed; the service keeps
    serving its last-known-good listings either way.
    """
    return HealthResponse(
        status="degraded" if service.error else "healthy",
        backend_url=settings.BACKEND_URL,
        items=len(service.items),
        last_fetch_error=service.error,
        loaded_at=service.loaded_at,
    )


@router.get("/ready")
def readiness(response: Response, service: ListingService = Depends(get_listing_service)):
    """
    Readiness probe - ready once at least one listing load has completed.

    Returns 200 if ready, 503 otherwise.
    """
    if service.loaded_at is None:
        response.status_code = 503
        return {
            "status": "not_ready",
            "error": service.error,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
