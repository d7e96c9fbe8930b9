"""
Per-pod metrics: basic usage series and the enhanced capacity view.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
import urllib3
from kubernetes.client.exceptions import ApiException
from kubernetes.utils import parse_quantity

from promscout.cluster.client import ClusterClient
from promscout.metrics.base import BaseMetricsHandler, MetricsRequest, MetricsStream, Payload
from promscout.metrics.runner import QueryRunner
from promscout.query import builder

logger = structlog.get_logger()


def sum_container_resources(pod: Any) -> dict[str, dict[str, float]]:
    """
    Sum container limits and requests from a pod spec.

    CPU is reported in millicores and memory in bytes. Containers without
    a value for a resource contribute nothing.
    """
    totals = {
        "limits": {"cpu": 0.0, "memory": 0.0},
        "requests": {"cpu": 0.0, "memory": 0.0},
    }
    spec = getattr(pod, "spec", None)
    for container in (spec.containers if spec is not None else None) or []:
        resources = container.resources
        if resources is None:
            continue
        for kind in ("limits", "requests"):
            values = getattr(resources, kind) or {}
            if values.get("cpu"):
                totals[kind]["cpu"] += float(parse_quantity(values["cpu"]) * 1000)
            if values.get("memory"):
                totals[kind]["memory"] += float(parse_quantity(values["memory"]))
    return totals


# key, variants builder, multiplier applied to the resolved value
_RECOMMENDATIONS = (
    ("cpu_target", builder.vpa_cpu_target, 1000.0),
    ("cpu_upperbound", builder.vpa_cpu_upperbound, 1.0),
    ("memory_target", builder.vpa_memory_target, 1.0),
    ("memory_upperbound", builder.vpa_memory_upperbound, 1.0),
)


class PodMetricsHandler(BaseMetricsHandler):
    """Basic pod usage: CPU, memory working set, network."""

    operation = "pod_metrics"

    async def stream(self, request: MetricsRequest, namespace: str, pod: str) -> MetricsStream:
        async def collect(cluster: ClusterClient, runner: QueryRunner) -> Payload:
            series = await runner.series(builder.pod_cpu_rate(namespace, pod))
            series += await runner.series(builder.pod_memory_working_set(namespace, pod))
            series += await runner.optional_series(builder.pod_network_receive(namespace, pod))
            series += await runner.optional_series(builder.pod_network_transmit(namespace, pod))
            return {"series": [s.to_dict() for s in series]}

        return await self._open_stream(request, f"{namespace}/{pod}", collect)


class EnhancedPodMetricsHandler(BaseMetricsHandler):
    """Pod usage alongside limits, requests and autoscaler recommendations."""

    operation = "pod_enhanced_metrics"

    async def stream(self, request: MetricsRequest, namespace: str, pod: str) -> MetricsStream:
        async def collect(cluster: ClusterClient, runner: QueryRunner) -> Payload:
            series = await runner.series(builder.pod_cpu_average(namespace, pod))
            series += await runner.series(builder.pod_cpu_maximum(namespace, pod))
            series += await runner.series(builder.pod_memory_usage(namespace, pod))

            payload: Payload = {"series": [s.to_dict() for s in series]}

            ceilings = await self._resource_ceilings(cluster, namespace, pod)
            if ceilings is not None:
                payload.update(ceilings)

            recommendations = await self._recommendations(runner, namespace)
            if recommendations:
                payload["recommendations"] = recommendations
            return payload

        return await self._open_stream(request, f"{namespace}/{pod}", collect)

    async def _resource_ceilings(
        self, cluster: ClusterClient, namespace: str, pod: str
    ) -> dict[str, dict[str, float]] | None:
        try:
            spec = await cluster.read_pod(namespace, pod)
        except (ApiException, urllib3.exceptions.HTTPError, OSError) as exc:
            logger.warning("pod_read_failed", namespace=namespace, pod=pod, error=str(exc))
            return None
        try:
            return sum_container_resources(spec)
        except ValueError as exc:
            logger.warning("pod_resources_unparseable", namespace=namespace, pod=pod, error=str(exc))
            return None

    async def _recommendations(self, runner: QueryRunner, namespace: str) -> dict[str, float]:
        values = await asyncio.gather(
            *(runner.first_positive(build(namespace)) for _, build, _ in _RECOMMENDATIONS)
        )
        return {
            key: value * scale
            for (key, _, scale), value in zip(_RECOMMENDATIONS, values)
            if value is not None
        }
