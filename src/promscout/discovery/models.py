"""
Data models for discovered metrics backends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class InstanceTarget:
    """A backend addressed through the pod proxy subresource."""

    namespace: str
    pod: str
    port: int

    is_service = False

    def to_dict(self) -> dict[str, Any]:
        return {"namespace": self.namespace, "pod": self.pod, "port": self.port}


@dataclass(frozen=True)
class ServiceTarget:
    """A backend addressed through the service proxy subresource.

    The named port wins over the numeric one when both are known.
    """

    namespace: str
    service: str
    port_name: str = ""
    port: int = 0

    is_service = True

    @property
    def port_ref(self) -> str:
        if self.port_name:
            return self.port_name
        if self.port:
            return str(self.port)
        return ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "namespace": self.namespace,
            "service": self.service,
            "port": self.port,
        }
        if self.port_name:
            out["portName"] = self.port_name
        return out


ProxyTarget = Union[InstanceTarget, ServiceTarget]


@dataclass(frozen=True)
class DiscoveryRules:
    """Heuristics used to recognise a metrics backend."""

    backend_name: str = "prometheus"
    label_selector: str = "app.kubernetes.io/name=prometheus"
    excluded_hint: str = "operator"
    default_port: int = 9090
    instance_port_hints: tuple[str, ...] = ("web",)
    service_port_hints: tuple[str, ...] = ("web", "prom", "http")
    preferred_namespaces: tuple[str, ...] = ("default", "monitoring", "observability", "prometheus")
    buildinfo_path: str = "api/v1/status/buildinfo"

    @classmethod
    def from_settings(cls, settings: Any) -> DiscoveryRules:
        return cls(
            backend_name=settings.backend_name,
            label_selector=settings.backend_label_selector,
            excluded_hint=settings.excluded_image_hint,
            default_port=settings.default_port,
            instance_port_hints=tuple(settings.instance_port_hints),
            service_port_hints=tuple(settings.service_port_hints),
            preferred_namespaces=tuple(settings.preferred_namespaces),
            buildinfo_path=settings.buildinfo_path,
        )
