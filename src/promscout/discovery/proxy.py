"""
Proxied GETs against a metrics backend through the control plane.

The engine never connects to in-cluster addresses. Every request is sent
to the API server's pod or service proxy subresource, which forwards it.
"""

from __future__ import annotations

from typing import Mapping
from urllib.parse import quote

import structlog

from promscout.cluster.client import ClusterClient
from promscout.discovery.models import ProxyTarget, ServiceTarget

logger = structlog.get_logger()


def proxy_resource_path(target: ProxyTarget, path: str) -> str:
    """API-server path that forwards ``path`` to the target's port."""
    suffix = path.lstrip("/")
    ns = quote(target.namespace, safe="")

    if isinstance(target, ServiceTarget):
        name = quote(target.service, safe="")
        if target.port_ref:
            name = f"{name}:{quote(target.port_ref, safe='')}"
        return f"/api/v1/namespaces/{ns}/services/{name}/proxy/{suffix}"

    name = f"{quote(target.pod, safe='')}:{target.port}"
    return f"/api/v1/namespaces/{ns}/pods/{name}/proxy/{suffix}"


class ProxyClient:
    """
    Issue GET requests to a backend via the control-plane proxy.

    No retries are performed here.
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    async def get(
        self,
        cluster: ClusterClient,
        target: ProxyTarget,
        path: str,
        params: Mapping[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> bytes:
        """
        GET ``path`` on the target and return the raw body.

        Raises:
            ProxyError: on transport failure or a non-2xx answer
        """
        resource_path = proxy_resource_path(target, path)
        logger.debug("proxy_get", path=resource_path, query=(params or {}).get("query"))
        return await cluster.raw_get(resource_path, params, timeout=timeout or self._timeout)
