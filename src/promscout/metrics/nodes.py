"""
Per-node metrics.
"""

from __future__ import annotations

from typing import Any

from promscout.cluster.client import ClusterClient
from promscout.metrics.base import BaseMetricsHandler, MetricsRequest, MetricsStream, Payload
from promscout.metrics.runner import QueryRunner
from promscout.query import builder


class NodeMetricsHandler(BaseMetricsHandler):
    """Node utilisation series plus an instant snapshot."""

    operation = "node_metrics"

    async def stream(self, request: MetricsRequest, node: str) -> MetricsStream:
        async def collect(cluster: ClusterClient, runner: QueryRunner) -> Payload:
            series = await runner.series(builder.node_cpu_percent(node))
            series += await runner.series(builder.node_memory_percent(node))

            optional = [
                builder.node_filesystem_percent(node),
                builder.node_network_receive(node),
                builder.node_network_transmit(node),
                builder.node_request_ratio(node, "cpu"),
                builder.node_request_ratio(node, "memory"),
                builder.node_disk_used(),
                builder.node_disk_available(),
                *builder.node_memory_breakdown(),
                builder.node_cpu_aggregated(),
            ]
            for variants in optional:
                series += await runner.optional_series(variants)

            return {
                "series": [s.to_dict() for s in series],
                "instant": await self._instant(runner, node),
            }

        return await self._open_stream(request, node, collect)

    async def _instant(self, runner: QueryRunner, node: str) -> dict[str, Any]:
        instant: dict[str, Any] = {}

        pods: dict[str, float] = {}
        capacity = await runner.optional_scalar(builder.node_pods_capacity(node))
        if capacity is not None:
            pods["capacity"] = capacity
        used = await runner.optional_scalar(builder.node_pods_running(node))
        if used is not None:
            pods["used"] = used
        if pods:
            instant["pods"] = pods

        scalars = {
            "cpu_utilization": builder.node_request_ratio(node, "cpu")[0],
            "memory_utilization": builder.node_request_ratio(node, "memory")[0],
        }
        for key, query in scalars.items():
            value = await runner.optional_scalar(query)
            if value is not None:
                instant[key] = value

        for key, variants in (
            ("disk_used", builder.node_disk_used()),
            ("disk_available", builder.node_disk_available()),
        ):
            value = await runner.first_positive(variants)
            if value is not None:
                instant[key] = value

        return instant
