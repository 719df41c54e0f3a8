"""Health check endpoints.

Liveness and readiness probes. Neither touches Shopify.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from app.infrastructure.config import settings

router = APIRouter()

SERVICE_NAME = "upsellr-shopify-bridge"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    storage_backend: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=settings.api_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if service is ready to accept requests."""
    return ReadinessResponse(status="ready", storage_backend=settings.storage_backend)
