"""
Pure matching rules for recognising a metrics backend among pods and services.

These functions only inspect kubernetes model objects; they never call the API.
"""

from __future__ import annotations

from typing import Any

from promscout.discovery.models import DiscoveryRules, InstanceTarget, ServiceTarget

RUNNING_PHASE = "Running"
NAME_LABEL = "app.kubernetes.io/name"
COMPONENT_LABEL = "app.kubernetes.io/component"


def is_running(pod: Any) -> bool:
    status = getattr(pod, "status", None)
    return status is not None and status.phase == RUNNING_PHASE


def _containers(pod: Any) -> list[Any]:
    spec = getattr(pod, "spec", None)
    if spec is None:
        return []
    return list(spec.containers or [])


def pick_container_port(containers: list[Any], rules: DiscoveryRules) -> int:
    """First port that is the well-known port or whose name carries a hint.

    Falls back to the well-known port when nothing matches.
    """
    for container in containers:
        for port in container.ports or []:
            name = (port.name or "").lower()
            if port.container_port == rules.default_port or any(
                hint in name for hint in rules.instance_port_hints
            ):
                return port.container_port or rules.default_port
    return rules.default_port


def looks_like_backend_container(container: Any, rules: DiscoveryRules) -> bool:
    """Name or image mentions the backend, and neither mentions the excluded hint.

    The exclusion keeps operator/controller images from being targeted.
    """
    name = (container.name or "").lower()
    image = (container.image or "").lower()
    backend = rules.backend_name.lower()
    excluded = rules.excluded_hint.lower()
    if backend not in name and backend not in image:
        return False
    return excluded not in name and excluded not in image


def labeled_pod_target(pod: Any, rules: DiscoveryRules) -> InstanceTarget | None:
    """Target for a pod found by the canonical label, if it is running."""
    if not is_running(pod):
        return None
    port = pick_container_port(_containers(pod), rules)
    return InstanceTarget(namespace=pod.metadata.namespace, pod=pod.metadata.name, port=port)


def heuristic_pod_target(pod: Any, rules: DiscoveryRules) -> InstanceTarget | None:
    """Target for a running pod with a backend-looking container."""
    if not is_running(pod):
        return None
    for container in _containers(pod):
        if looks_like_backend_container(container, rules):
            port = pick_container_port([container], rules)
            return InstanceTarget(
                namespace=pod.metadata.namespace, pod=pod.metadata.name, port=port
            )
    return None


def has_backend_container(pod: Any, rules: DiscoveryRules) -> bool:
    """Presence-only variant of heuristic_pod_target(): ignores pod phase."""
    return any(looks_like_backend_container(c, rules) for c in _containers(pod))


def service_matches(service: Any, rules: DiscoveryRules) -> bool:
    """Service name contains the backend name, or its name/component label equals it."""
    backend = rules.backend_name.lower()
    name = (service.metadata.name or "").lower()
    labels = service.metadata.labels or {}
    return (
        backend in name
        or (labels.get(NAME_LABEL) or "").lower() == backend
        or (labels.get(COMPONENT_LABEL) or "").lower() == backend
    )


def service_targets(service: Any, rules: DiscoveryRules) -> list[ServiceTarget]:
    """One candidate per service port that looks like the backend's web port."""
    if not service_matches(service, rules):
        return []
    spec = getattr(service, "spec", None)
    targets: list[ServiceTarget] = []
    for port in (spec.ports if spec is not None else None) or []:
        port_name = port.name or ""
        lowered = port_name.lower()
        if port.port == rules.default_port or any(h in lowered for h in rules.service_port_hints):
            targets.append(
                ServiceTarget(
                    namespace=service.metadata.namespace,
                    service=service.metadata.name,
                    port_name=port_name,
                    port=port.port or 0,
                )
            )
    return targets
