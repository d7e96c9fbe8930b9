"""
Cluster-wide overview metrics.
"""

from __future__ import annotations

from typing import Any

import structlog
import urllib3
from kubernetes.client.exceptions import ApiException

from promscout.cluster.client import ClusterClient
from promscout.metrics.base import BaseMetricsHandler, MetricsRequest, MetricsStream, Payload
from promscout.metrics.runner import QueryRunner
from promscout.query import builder

logger = structlog.get_logger()


class ClusterOverviewHandler(BaseMetricsHandler):
    """Ready nodes, CPU/memory packing and cluster totals."""

    operation = "cluster_overview"

    async def stream(self, request: MetricsRequest) -> MetricsStream:
        async def collect(cluster: ClusterClient, runner: QueryRunner) -> Payload:
            headline = [
                builder.cluster_ready_nodes(),
                builder.cluster_packing("cpu"),
                builder.cluster_packing("memory"),
            ]
            series = []
            for query in headline:
                series += await runner.series(query)

            instant: dict[str, Any] = {}
            for query in headline:
                value = await runner.optional_scalar(query)
                if value is not None:
                    instant[query.metric] = value

            totals = {
                "total_allocatable_cpu": builder.cluster_allocatable_total("cpu"),
                "total_cpu_requests": builder.cluster_requests_total("cpu"),
                "total_allocatable_memory": builder.cluster_allocatable_total("memory"),
                "total_memory_requests": builder.cluster_requests_total("memory"),
                "pods_present": builder.cluster_pods_present(),
            }
            for key, query in totals.items():
                value = await runner.optional_scalar(query)
                if value is not None:
                    instant[key] = value

            capacity = await runner.first_positive(builder.cluster_pods_capacity())
            if capacity is not None:
                instant["pods_capacity"] = capacity

            version = await self._server_version(cluster)
            if version:
                instant["kubernetes_version"] = version
            instant["metrics_server"] = await cluster.metrics_api_available(
                self._settings.metrics_server_timeout
            )

            return {"series": [s.to_dict() for s in series], "instant": instant}

        return await self._open_stream(request, "", collect)

    async def _server_version(self, cluster: ClusterClient) -> str:
        try:
            return await cluster.server_version()
        except (ApiException, urllib3.exceptions.HTTPError, OSError) as exc:
            logger.info("server_version_unavailable", cluster=cluster.name, error=str(exc))
            return ""
