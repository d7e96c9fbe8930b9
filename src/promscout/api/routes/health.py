from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from promscout.api.deps import get_metrics_service
from promscout.metrics import MetricsService

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str = "0.1.0"


class ReadinessResponse(BaseModel):
    status: str
    clusters: int
    cached_payloads: int


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/ready", response_model=ReadinessResponse, status_code=status.HTTP_200_OK)
async def readiness_check(
    service: MetricsService = Depends(get_metrics_service),  # noqa: B008
) -> ReadinessResponse:
    """Ready once at least one kubeconfig is registered."""
    clusters = len(service.settings.kubeconfigs)
    return ReadinessResponse(
        status="ready" if clusters else "not_ready",
        clusters=clusters,
        cached_payloads=len(service.cache),
    )
