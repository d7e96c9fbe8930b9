"""
Backend availability probe.

Distinguishes three states: a verified reachable backend, a backend that
appears installed but could not be verified, and no backend at all.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import structlog

from promscout.cluster.factory import ClusterClientFactory
from promscout.core.errors import ConfigurationError, DiscoveryUnavailable
from promscout.discovery.engine import DiscoveryEngine
from promscout.discovery.models import ProxyTarget

logger = structlog.get_logger()


@dataclass
class AvailabilityReport:
    """Result of an availability probe."""

    installed: bool = False
    reachable: bool = False
    target: ProxyTarget | None = None
    reason: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"installed": self.installed, "reachable": self.reachable}
        if self.target is not None:
            out.update(self.target.to_dict())
        if self.reason:
            out["reason"] = self.reason
        if self.error:
            out["error"] = self.error
        return out


class AvailabilityHandler:
    """
    Probe whether a cluster runs a reachable metrics backend.

    Args:
        clients: Cluster client factory
        engine: Discovery engine
        timeout: Budget for discovery and for the presence fallback, each
    """

    def __init__(
        self,
        clients: ClusterClientFactory,
        engine: DiscoveryEngine,
        *,
        timeout: float = 3.0,
    ) -> None:
        self._clients = clients
        self._engine = engine
        self._timeout = timeout

    async def check(self, config_id: str, cluster: str | None = None) -> AvailabilityReport:
        try:
            cluster_client = self._clients.get_client(config_id, cluster)
        except ConfigurationError as exc:
            return AvailabilityReport(error=exc.message)

        try:
            target = await self._engine.discover(cluster_client, self._timeout)
        except DiscoveryUnavailable as exc:
            logger.info("availability_discovery_failed", cluster=cluster_client.name, **exc.details)
        else:
            return AvailabilityReport(installed=True, reachable=True, target=target)

        try:
            present = await asyncio.wait_for(
                self._engine.detect_presence(cluster_client), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.info("presence_check_timed_out", cluster=cluster_client.name)
            present = False

        if present:
            return AvailabilityReport(
                installed=True,
                reachable=False,
                reason="prometheus detected but not reachable via proxy",
            )
        return AvailabilityReport()
