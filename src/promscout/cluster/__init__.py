"""Cluster access: authenticated control-plane clients."""

from promscout.cluster.client import ClusterClient
from promscout.cluster.factory import ClusterClientFactory, KubeconfigClientFactory

__all__ = [
    "ClusterClient",
    "ClusterClientFactory",
    "KubeconfigClientFactory",
]
