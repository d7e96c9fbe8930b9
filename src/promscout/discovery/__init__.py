"""
Metrics backend discovery and control-plane proxying.
"""

from promscout.discovery.engine import DiscoveryEngine, DiscoveryPhase
from promscout.discovery.models import (
    DiscoveryRules,
    InstanceTarget,
    ProxyTarget,
    ServiceTarget,
)
from promscout.discovery.proxy import ProxyClient, proxy_resource_path

__all__ = [
    "DiscoveryEngine",
    "DiscoveryPhase",
    "DiscoveryRules",
    "InstanceTarget",
    "ServiceTarget",
    "ProxyTarget",
    "ProxyClient",
    "proxy_resource_path",
]
