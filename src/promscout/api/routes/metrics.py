from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from promscout.api.deps import get_metrics_service
from promscout.core.errors import handle_errors
from promscout.logging import bind_request_context, clear_request_context
from promscout.metrics import MetricsRequest, MetricsService

router = APIRouter()
logger = structlog.get_logger()


def metrics_request(
    config: str = Query(default="", description="Registered kubeconfig id"),
    cluster: str | None = Query(default=None, description="Context within the kubeconfig"),
    range_: str | None = Query(
        default=None, alias="range", description="Lookback window, e.g. 15m, 6h, 7d"
    ),
    step: str | None = Query(default=None, description="Range query resolution, e.g. 15s"),
) -> MetricsRequest:
    clear_request_context()
    bind_request_context(config=config, cluster=cluster)
    return MetricsRequest(config_id=config, cluster=cluster, range=range_, step=step)


@router.get("/metrics/prometheus/availability")
async def prometheus_availability(
    config: str = Query(default=""),
    cluster: str | None = Query(default=None),
    service: MetricsService = Depends(get_metrics_service),  # noqa: B008
) -> Any:
    report = await service.availability(config, cluster)
    logger.info("availability_checked", installed=report.installed, reachable=report.reachable)
    if report.error:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=report.to_dict())
    return report.to_dict()


@router.get("/metrics/pods/{namespace}/{pod}/prometheus")
@handle_errors()
async def pod_metrics(
    namespace: str,
    pod: str,
    request: MetricsRequest = Depends(metrics_request),  # noqa: B008
    service: MetricsService = Depends(get_metrics_service),  # noqa: B008
) -> Any:
    stream = await service.pod_enhanced_metrics(request, namespace, pod)
    return stream.initial


@router.get("/metrics/pods/{namespace}/{pod}/prometheus/usage")
@handle_errors()
async def pod_usage_metrics(
    namespace: str,
    pod: str,
    request: MetricsRequest = Depends(metrics_request),  # noqa: B008
    service: MetricsService = Depends(get_metrics_service),  # noqa: B008
) -> Any:
    stream = await service.pod_metrics(request, namespace, pod)
    return stream.initial


@router.get("/metrics/nodes/{node}/prometheus")
@handle_errors()
async def node_metrics(
    node: str,
    request: MetricsRequest = Depends(metrics_request),  # noqa: B008
    service: MetricsService = Depends(get_metrics_service),  # noqa: B008
) -> Any:
    stream = await service.node_metrics(request, node)
    return stream.initial


@router.get("/metrics/overview/prometheus")
@handle_errors()
async def cluster_overview(
    request: MetricsRequest = Depends(metrics_request),  # noqa: B008
    service: MetricsService = Depends(get_metrics_service),  # noqa: B008
) -> Any:
    stream = await service.cluster_overview(request)
    return stream.initial
