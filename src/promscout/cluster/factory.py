"""
Resolution of caller-supplied cluster coordinates into a ClusterClient.

A coordinate is a kubeconfig id (registered in settings) plus an optional
cluster/context name inside that kubeconfig.
"""

from __future__ import annotations

import threading
from typing import Mapping, Protocol

import structlog
from kubernetes import config
from kubernetes.config.config_exception import ConfigException

from promscout.cluster.client import ClusterClient
from promscout.core.errors import ConfigurationError

logger = structlog.get_logger()


class ClusterClientFactory(Protocol):
    """Anything that can turn (config id, cluster) into an authenticated client."""

    def get_client(self, config_id: str, cluster: str | None = None) -> ClusterClient: ...


class KubeconfigClientFactory:
    """
    Build ClusterClients from registered kubeconfig files.

    Clients are created once per (config id, cluster) and reused.

    Args:
        kubeconfigs: Mapping of config id to kubeconfig path
        request_timeout: Default per-call timeout for the created clients
    """

    def __init__(self, kubeconfigs: Mapping[str, str], *, request_timeout: float = 30.0) -> None:
        self._kubeconfigs = dict(kubeconfigs)
        self._request_timeout = request_timeout
        self._clients: dict[tuple[str, str], ClusterClient] = {}
        self._lock = threading.Lock()

    def get_client(self, config_id: str, cluster: str | None = None) -> ClusterClient:
        """
        Resolve coordinates into a client.

        Raises:
            ConfigurationError: missing or unknown config id, or a kubeconfig
                that cannot be loaded for the requested cluster
        """
        if not config_id:
            raise ConfigurationError("config parameter is required")

        path = self._kubeconfigs.get(config_id)
        if path is None:
            raise ConfigurationError("config not found", {"config": config_id})

        key = (config_id, cluster or "")
        with self._lock:
            existing = self._clients.get(key)
            if existing is not None:
                return existing

            try:
                api_client = config.new_client_from_config(
                    config_file=path,
                    context=cluster or None,
                )
            except (ConfigException, OSError) as e:
                raise ConfigurationError(
                    f"Failed to get Kubernetes client: {e}",
                    {"config": config_id, "cluster": cluster},
                ) from e

            cluster_client = ClusterClient(
                api_client,
                request_timeout=self._request_timeout,
                name=cluster or config_id,
            )
            self._clients[key] = cluster_client
            logger.info("cluster_client_created", config=config_id, cluster=cluster)
            return cluster_client

    def close(self) -> None:
        with self._lock:
            for cluster_client in self._clients.values():
                cluster_client.close()
            self._clients.clear()
