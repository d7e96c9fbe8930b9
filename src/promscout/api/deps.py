from __future__ import annotations

from fastapi import Depends

from promscout.cluster.factory import KubeconfigClientFactory
from promscout.config import Settings, get_settings
from promscout.metrics import MetricsService

_client_factory: KubeconfigClientFactory | None = None
_metrics_service: MetricsService | None = None


def get_metrics_service(settings: Settings = Depends(get_settings)) -> MetricsService:  # noqa: B008
    global _client_factory, _metrics_service

    if _metrics_service is None:
        _client_factory = KubeconfigClientFactory(
            settings.kubeconfigs, request_timeout=settings.kube_request_timeout
        )
        _metrics_service = MetricsService(_client_factory, settings)
    return _metrics_service


def reset_metrics_service() -> None:
    """Close cached cluster clients and drop the process-wide service."""
    global _client_factory, _metrics_service

    if _client_factory is not None:
        _client_factory.close()
    _client_factory = None
    _metrics_service = None
