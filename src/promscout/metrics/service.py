"""
MetricsService: one entry point for every metrics operation.
"""

from __future__ import annotations

from promscout.cache import ResponseCache
from promscout.cluster.factory import ClusterClientFactory
from promscout.config.settings import Settings
from promscout.discovery.engine import DiscoveryEngine
from promscout.discovery.models import DiscoveryRules
from promscout.discovery.proxy import ProxyClient
from promscout.metrics.availability import AvailabilityHandler, AvailabilityReport
from promscout.metrics.base import MetricsRequest, MetricsStream
from promscout.metrics.nodes import NodeMetricsHandler
from promscout.metrics.overview import ClusterOverviewHandler
from promscout.metrics.pods import EnhancedPodMetricsHandler, PodMetricsHandler


class MetricsService:
    """
    Shares one cache, discovery engine and proxy client across all handlers.

    Args:
        clients: Cluster client factory
        settings: Application settings
        cache: Response cache; a fresh one with the configured TTL by default
        proxy: Proxy client; built from settings by default
    """

    def __init__(
        self,
        clients: ClusterClientFactory,
        settings: Settings,
        *,
        cache: ResponseCache | None = None,
        proxy: ProxyClient | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache or ResponseCache(ttl=settings.cache_ttl_seconds)
        self.proxy = proxy or ProxyClient(timeout=settings.kube_request_timeout)
        self.engine = DiscoveryEngine(
            self.proxy,
            DiscoveryRules.from_settings(settings),
            verify_timeout=settings.verify_timeout,
        )

        shared = (clients, self.engine, self.proxy, self.cache, settings)
        self._pods = PodMetricsHandler(*shared)
        self._enhanced = EnhancedPodMetricsHandler(*shared)
        self._nodes = NodeMetricsHandler(*shared)
        self._overview = ClusterOverviewHandler(*shared)
        self._availability = AvailabilityHandler(
            clients, self.engine, timeout=settings.availability_timeout
        )

    async def pod_metrics(self, request: MetricsRequest, namespace: str, pod: str) -> MetricsStream:
        return await self._pods.stream(request, namespace, pod)

    async def pod_enhanced_metrics(
        self, request: MetricsRequest, namespace: str, pod: str
    ) -> MetricsStream:
        return await self._enhanced.stream(request, namespace, pod)

    async def node_metrics(self, request: MetricsRequest, node: str) -> MetricsStream:
        return await self._nodes.stream(request, node)

    async def cluster_overview(self, request: MetricsRequest) -> MetricsStream:
        return await self._overview.stream(request)

    async def availability(self, config_id: str, cluster: str | None = None) -> AvailabilityReport:
        return await self._availability.check(config_id, cluster)
