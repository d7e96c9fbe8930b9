"""
Metrics endpoint handlers.
"""

from promscout.metrics.availability import AvailabilityHandler, AvailabilityReport
from promscout.metrics.base import BaseMetricsHandler, MetricsRequest, MetricsStream
from promscout.metrics.nodes import NodeMetricsHandler
from promscout.metrics.overview import ClusterOverviewHandler
from promscout.metrics.pods import EnhancedPodMetricsHandler, PodMetricsHandler, sum_container_resources
from promscout.metrics.runner import QueryRunner
from promscout.metrics.service import MetricsService

__all__ = [
    "AvailabilityHandler",
    "AvailabilityReport",
    "BaseMetricsHandler",
    "ClusterOverviewHandler",
    "EnhancedPodMetricsHandler",
    "MetricsRequest",
    "MetricsService",
    "MetricsStream",
    "NodeMetricsHandler",
    "PodMetricsHandler",
    "QueryRunner",
    "sum_container_resources",
]
