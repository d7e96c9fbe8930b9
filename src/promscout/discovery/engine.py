"""
Metrics backend discovery.

Locates a running Prometheus inside a cluster by evaluating ordered
discovery phases lazily:

1. canonical label scan (pods labelled app.kubernetes.io/name=prometheus)
2. conventional namespaces, then all namespaces, by container name/image
3. services matching name/label conventions, addressed via the service proxy

Each phase generates candidates; every candidate is verified with a
build-info probe before it is trusted. The first verified candidate wins.
Nothing is cached between calls: each discover() re-resolves.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import structlog
import urllib3
from kubernetes.client.exceptions import ApiException

from promscout.cluster.client import ClusterClient
from promscout.core.errors import DiscoveryUnavailable, ProxyError
from promscout.discovery.heuristics import (
    has_backend_container,
    heuristic_pod_target,
    labeled_pod_target,
    service_matches,
    service_targets,
)
from promscout.discovery.models import DiscoveryRules, ProxyTarget
from promscout.discovery.proxy import ProxyClient

logger = structlog.get_logger()

# Errors that end a listing step without failing discovery
_LIST_ERRORS = (ApiException, urllib3.exceptions.HTTPError, OSError)


@dataclass(frozen=True)
class DiscoveryPhase:
    """A named candidate generator."""

    name: str
    candidates: Callable[[ClusterClient], AsyncIterator[ProxyTarget]]


class DiscoveryEngine:
    """
    Resolve a verified metrics backend target.

    Args:
        proxy: Client used for verification probes
        rules: Matching heuristics
        verify_timeout: Per-probe timeout in seconds
    """

    def __init__(
        self,
        proxy: ProxyClient,
        rules: DiscoveryRules | None = None,
        *,
        verify_timeout: float = 3.0,
    ) -> None:
        self._proxy = proxy
        self.rules = rules or DiscoveryRules()
        self._verify_timeout = verify_timeout
        self.phases: list[DiscoveryPhase] = [
            DiscoveryPhase("canonical_label", self._labeled_candidates),
            DiscoveryPhase("namespace_scan", self._namespace_candidates),
            DiscoveryPhase("service_scan", self._service_candidates),
        ]

    async def discover(self, cluster: ClusterClient, time_budget: float) -> ProxyTarget:
        """
        Find and verify a backend within ``time_budget`` seconds.

        Raises:
            DiscoveryUnavailable: no candidate verified, or the budget ran out
        """
        try:
            return await asyncio.wait_for(self._search(cluster), timeout=time_budget)
        except asyncio.TimeoutError as exc:
            logger.warning("discovery_timed_out", cluster=cluster.name, budget=time_budget)
            raise DiscoveryUnavailable(details={"reason": "timeout"}) from exc

    async def _search(self, cluster: ClusterClient) -> ProxyTarget:
        tried: set[ProxyTarget] = set()
        for phase in self.phases:
            async for target in phase.candidates(cluster):
                if target in tried:
                    continue
                tried.add(target)
                if await self.verify(cluster, target):
                    logger.info(
                        "backend_discovered",
                        cluster=cluster.name,
                        phase=phase.name,
                        **target.to_dict(),
                    )
                    return target

        logger.info("backend_not_found", cluster=cluster.name, candidates=len(tried))
        raise DiscoveryUnavailable()

    async def verify(self, cluster: ClusterClient, target: ProxyTarget) -> bool:
        """Probe the build-info endpoint; True only for a success status."""
        try:
            raw = await asyncio.wait_for(
                self._proxy.get(
                    cluster,
                    target,
                    self.rules.buildinfo_path,
                    timeout=self._verify_timeout,
                ),
                timeout=self._verify_timeout,
            )
            body = json.loads(raw)
        except (ProxyError, asyncio.TimeoutError, ValueError, TypeError) as exc:
            logger.debug("candidate_rejected", reason=str(exc) or type(exc).__name__, **target.to_dict())
            return False

        if not isinstance(body, dict) or body.get("status") != "success":
            logger.debug("candidate_rejected", reason="status not success", **target.to_dict())
            return False
        return True

    # ---------- candidate generators ----------

    async def _labeled_candidates(self, cluster: ClusterClient) -> AsyncIterator[ProxyTarget]:
        try:
            pods = await cluster.list_pods(label_selector=self.rules.label_selector)
        except _LIST_ERRORS as exc:
            logger.debug("label_scan_failed", error=str(exc))
            return
        for pod in pods:
            target = labeled_pod_target(pod, self.rules)
            if target is not None:
                yield target

    async def _namespace_candidates(self, cluster: ClusterClient) -> AsyncIterator[ProxyTarget]:
        for namespace in self.rules.preferred_namespaces:
            try:
                pods = await cluster.list_pods(namespace=namespace)
            except _LIST_ERRORS as exc:
                logger.debug("namespace_scan_failed", namespace=namespace, error=str(exc))
                continue
            for pod in pods:
                target = heuristic_pod_target(pod, self.rules)
                if target is not None:
                    yield target

        try:
            pods = await cluster.list_pods()
        except _LIST_ERRORS as exc:
            logger.debug("cluster_pod_scan_failed", error=str(exc))
            return
        for pod in pods:
            if pod.metadata.namespace in self.rules.preferred_namespaces:
                continue
            target = heuristic_pod_target(pod, self.rules)
            if target is not None:
                yield target

    async def _service_candidates(self, cluster: ClusterClient) -> AsyncIterator[ProxyTarget]:
        try:
            services = await cluster.list_services()
        except _LIST_ERRORS as exc:
            logger.debug("service_scan_failed", error=str(exc))
            return
        for service in services:
            for target in service_targets(service, self.rules):
                yield target

    # ---------- presence ----------

    async def detect_presence(self, cluster: ClusterClient) -> bool:
        """
        Cheap, unverified check that a backend is installed.

        Used only to tell "installed but unreachable" from "not installed";
        never to pick a query target.
        """
        try:
            if await cluster.list_pods(label_selector=self.rules.label_selector):
                return True
        except _LIST_ERRORS as exc:
            logger.debug("presence_label_check_failed", error=str(exc))

        try:
            if any(service_matches(s, self.rules) for s in await cluster.list_services()):
                return True
        except _LIST_ERRORS as exc:
            logger.debug("presence_service_check_failed", error=str(exc))

        try:
            if any(has_backend_container(p, self.rules) for p in await cluster.list_pods()):
                return True
        except _LIST_ERRORS as exc:
            logger.debug("presence_container_check_failed", error=str(exc))

        return False
