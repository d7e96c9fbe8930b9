"""
Authenticated access to a single cluster's control plane.

ClusterClient is the only object in promscout that talks to the Kubernetes
API. It wraps the synchronous kubernetes client and runs each call in the
default executor so handlers stay async. Resource-proxy calls go through
raw_get(), which never opens a connection to an in-cluster address.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Mapping

import structlog
import urllib3
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from promscout.core.errors import ProxyError

logger = structlog.get_logger()


class ClusterClient:
    """
    Async facade over a kubernetes ApiClient bound to one cluster.

    Args:
        api_client: Authenticated kubernetes ApiClient
        request_timeout: Default per-call timeout in seconds
        name: Cluster name, used for logging only
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        *,
        request_timeout: float = 30.0,
        name: str = "",
    ) -> None:
        self._api_client = api_client
        self._request_timeout = request_timeout
        self.name = name

    @property
    def core_api(self) -> client.CoreV1Api:
        return client.CoreV1Api(self._api_client)

    async def _run_sync(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Run synchronous kubernetes API call in executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def list_pods(
        self,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[Any]:
        """List pods in one namespace, or cluster-wide when namespace is None."""
        kwargs: dict[str, Any] = {"_request_timeout": self._request_timeout}
        if label_selector:
            kwargs["label_selector"] = label_selector

        if namespace:
            pods = await self._run_sync(self.core_api.list_namespaced_pod, namespace, **kwargs)
        else:
            pods = await self._run_sync(self.core_api.list_pod_for_all_namespaces, **kwargs)
        return list(pods.items)

    async def list_services(self) -> list[Any]:
        """List services across all namespaces."""
        svcs = await self._run_sync(
            self.core_api.list_service_for_all_namespaces,
            _request_timeout=self._request_timeout,
        )
        return list(svcs.items)

    async def read_pod(self, namespace: str, name: str) -> Any:
        return await self._run_sync(
            self.core_api.read_namespaced_pod,
            name,
            namespace,
            _request_timeout=self._request_timeout,
        )

    async def server_version(self) -> str:
        """Return the API server's git version string."""
        info = await self._run_sync(
            client.VersionApi(self._api_client).get_code,
            _request_timeout=self._request_timeout,
        )
        return getattr(info, "git_version", "") or ""

    async def metrics_api_available(self, timeout: float) -> bool:
        """True when the metrics.k8s.io node metrics API answers within timeout."""
        custom = client.CustomObjectsApi(self._api_client)
        try:
            await asyncio.wait_for(
                self._run_sync(
                    custom.list_cluster_custom_object,
                    "metrics.k8s.io",
                    "v1beta1",
                    "nodes",
                    limit=1,
                    _request_timeout=timeout,
                ),
                timeout=timeout,
            )
        except (ApiException, urllib3.exceptions.HTTPError, asyncio.TimeoutError) as exc:
            logger.debug("metrics_api_unavailable", cluster=self.name, error=str(exc))
            return False
        return True

    def _get_raw(
        self,
        resource_path: str,
        params: Mapping[str, str] | None,
        timeout: float,
    ) -> bytes:
        try:
            response = self._api_client.call_api(
                resource_path,
                "GET",
                query_params=list((params or {}).items()),
                header_params={"Accept": "application/json"},
                auth_settings=["BearerToken"],
                _return_http_data_only=True,
                _preload_content=False,
                _request_timeout=timeout,
            )
        except ApiException as exc:
            raise ProxyError(
                f"API server returned {exc.status}: {exc.reason}",
                {"path": resource_path, "status": exc.status},
            ) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise ProxyError(f"Proxy request failed: {exc}", {"path": resource_path}) from exc
        return response.data

    async def raw_get(
        self,
        resource_path: str,
        params: Mapping[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> bytes:
        """
        GET an API-server path and return the raw body.

        Raises:
            ProxyError: on any transport failure or non-2xx status
        """
        return await self._run_sync(
            self._get_raw,
            resource_path,
            params,
            timeout or self._request_timeout,
        )

    def close(self) -> None:
        self._api_client.close()
