"""
Shared plumbing for the metrics endpoint handlers.

Every handler follows the same cycle, wrapped in a fetch coroutine that the
delivery layer calls once for the initial payload and again on each refresh:

    sweep cache -> cache hit? return -> discover -> run queries -> cache -> return

Discovery is repeated on every cache miss because backend pods get replaced.
Failed fetches never touch the cache. Callers get their own copy of a
cached payload.
"""

from __future__ import annotations

import copy
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from promscout.cache import ResponseCache, cache_key
from promscout.cluster.client import ClusterClient
from promscout.cluster.factory import ClusterClientFactory
from promscout.config.settings import Settings
from promscout.discovery.engine import DiscoveryEngine
from promscout.discovery.proxy import ProxyClient
from promscout.metrics.runner import QueryRunner
from promscout.query.ranges import discovery_budget, parse_range, query_window

logger = structlog.get_logger()

Payload = dict[str, Any]
Collector = Callable[[ClusterClient, QueryRunner], Awaitable[Payload]]


@dataclass
class MetricsRequest:
    """Caller-supplied coordinates for one metrics subscription."""

    config_id: str
    cluster: str | None = None
    range: str | None = None
    step: str | None = None


@dataclass
class MetricsStream:
    """Initial payload plus the coroutine the delivery layer calls to refresh."""

    initial: Payload
    refresh: Callable[[], Awaitable[Payload]]


class BaseMetricsHandler:
    """Base class wiring cache, discovery and query execution together."""

    operation: str = ""

    def __init__(
        self,
        clients: ClusterClientFactory,
        engine: DiscoveryEngine,
        proxy: ProxyClient,
        cache: ResponseCache,
        settings: Settings,
    ) -> None:
        self._clients = clients
        self._engine = engine
        self._proxy = proxy
        self._cache = cache
        self._settings = settings

    def time_budget(self, range_token: str) -> float:
        return discovery_budget(
            parse_range(range_token),
            default=self._settings.discovery_timeout,
            day=self._settings.discovery_timeout_day,
            week=self._settings.discovery_timeout_week,
        )

    async def _open_stream(
        self,
        request: MetricsRequest,
        resource: str,
        collect: Collector,
    ) -> MetricsStream:
        """
        Resolve the cluster client and run the first fetch.

        Raises:
            ConfigurationError: bad cluster coordinates
            DiscoveryUnavailable: no verified backend
            QueryExecutionError: a required query failed
        """
        cluster_client = self._clients.get_client(request.config_id, request.cluster)

        range_token = request.range or self._settings.default_range
        step = request.step or self._settings.default_step
        key = cache_key(
            self.operation,
            request.config_id,
            request.cluster or "",
            resource,
            range_token,
            step,
        )
        budget = self.time_budget(range_token)
        log = logger.bind(operation=self.operation, resource=resource, range=range_token, step=step)

        async def fetch() -> Payload:
            self._cache.sweep()
            cached = self._cache.get(key)
            if cached is not None:
                log.debug("cache_hit")
                return copy.deepcopy(cached)

            target = await self._engine.discover(cluster_client, budget)
            runner = QueryRunner(
                self._proxy, cluster_client, target, query_window(range_token, step)
            )
            payload = await collect(cluster_client, runner)

            self._cache.set(key, payload)
            log.debug("payload_cached", ttl=self._cache.ttl, series=len(payload.get("series", [])))
            return copy.deepcopy(payload)

        initial = await fetch()
        return MetricsStream(initial=initial, refresh=fetch)
