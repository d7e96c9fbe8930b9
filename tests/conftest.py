"""Root test configuration."""

import json
import logging
from types import SimpleNamespace
from typing import Any

import pytest
import structlog
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from promscout.core.errors import ConfigurationError, ProxyError


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def matrix(*series: tuple[dict[str, str], list[list[Any]]]) -> bytes:
    """Encode a successful range query response."""
    result = [{"metric": labels, "values": values} for labels, values in series]
    return json.dumps(
        {"status": "success", "data": {"resultType": "matrix", "result": result}}
    ).encode()


def vector(*values: str) -> bytes:
    """Encode a successful instant query response, one sample per value."""
    result = [{"metric": {}, "value": [1700000000, v]} for v in values]
    return json.dumps(
        {"status": "success", "data": {"resultType": "vector", "result": result}}
    ).encode()


BUILDINFO_OK = json.dumps({"status": "success", "data": {"version": "2.51.0"}}).encode()
BUILDINFO_ERROR = json.dumps({"status": "error", "error": "not ready"}).encode()


class FakeCluster:
    """In-memory stand-in for ClusterClient.

    Proxied GETs are answered from ``routes``: the first route whose fragment
    appears in the resource path or in the ``query`` parameter wins. A route
    given an ``endpoint`` only answers paths ending with it. Its response may
    be bytes or an exception instance to raise. Unmatched GETs fail with
    ProxyError.
    """

    def __init__(self, name: str = "test") -> None:
        self.name = name
        self.pods: list[Any] = []
        self.services: list[Any] = []
        self.pod_specs: dict[tuple[str, str], Any] = {}
        self.routes: list[tuple[str, Any, str]] = []
        self.list_errors: dict[str, Exception] = {}
        self.version = "v1.29.2"
        self.metrics_api = True
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.list_calls: list[dict[str, Any]] = []

    def route(self, fragment: str, response: Any, endpoint: str = "") -> None:
        self.routes.append((fragment, response, endpoint))

    def queries(self) -> list[str]:
        return [params["query"] for _, params in self.calls if "query" in params]

    async def list_pods(
        self, namespace: str | None = None, label_selector: str | None = None
    ) -> list[Any]:
        self.list_calls.append({"namespace": namespace, "label_selector": label_selector})
        error = self.list_errors.get("pods")
        if error is not None:
            raise error
        pods = self.pods
        if namespace is not None:
            pods = [p for p in pods if p.metadata.namespace == namespace]
        if label_selector is not None:
            key, _, value = label_selector.partition("=")
            pods = [p for p in pods if (p.metadata.labels or {}).get(key) == value]
        return pods

    async def list_services(self) -> list[Any]:
        error = self.list_errors.get("services")
        if error is not None:
            raise error
        return self.services

    async def read_pod(self, namespace: str, name: str) -> Any:
        try:
            return self.pod_specs[(namespace, name)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    async def server_version(self) -> str:
        return self.version

    async def metrics_api_available(self, timeout: float) -> bool:
        return self.metrics_api

    async def raw_get(
        self,
        resource_path: str,
        params: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> bytes:
        params = dict(params or {})
        self.calls.append((resource_path, params))
        query = params.get("query", "")
        for fragment, response, endpoint in self.routes:
            if endpoint and not resource_path.endswith(endpoint):
                continue
            if fragment in resource_path or (query and fragment in query):
                if isinstance(response, Exception):
                    raise response
                return response
        raise ProxyError("API server returned 503: Service Unavailable", {"status": 503})


def make_pod(
    name: str,
    namespace: str,
    *,
    image: str = "quay.io/prometheus/prometheus:v2.51.0",
    container: str = "prometheus",
    labels: dict[str, str] | None = None,
    phase: str = "Running",
    ports: list[tuple[str, int]] | None = None,
    resources: client.V1ResourceRequirements | None = None,
) -> client.V1Pod:
    container_ports = [
        client.V1ContainerPort(name=port_name, container_port=number)
        for port_name, number in (ports if ports is not None else [("web", 9090)])
    ]
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
        spec=client.V1PodSpec(
            containers=[
                client.V1Container(
                    name=container, image=image, ports=container_ports, resources=resources
                )
            ]
        ),
        status=client.V1PodStatus(phase=phase),
    )


def make_service(
    name: str,
    namespace: str,
    *,
    labels: dict[str, str] | None = None,
    ports: list[tuple[str, int]] | None = None,
) -> client.V1Service:
    return client.V1Service(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
        spec=client.V1ServiceSpec(
            ports=[
                client.V1ServicePort(name=port_name or None, port=number)
                for port_name, number in (ports if ports is not None else [("web", 9090)])
            ]
        ),
    )


class StaticClientFactory:
    """ClusterClientFactory serving pre-built fake clusters keyed by config id."""

    def __init__(self, clusters: dict[str, FakeCluster]) -> None:
        self.clusters = clusters

    def get_client(self, config_id: str, cluster: str | None = None) -> Any:
        if not config_id:
            raise ConfigurationError("config parameter is required")
        if config_id not in self.clusters:
            raise ConfigurationError("config not found", {"config": config_id})
        return self.clusters[config_id]


@pytest.fixture
def fake_cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def helpers() -> Any:
    """Response encoders and kubernetes object builders for tests."""

    return SimpleNamespace(
        matrix=matrix,
        vector=vector,
        make_pod=make_pod,
        make_service=make_service,
        BUILDINFO_OK=BUILDINFO_OK,
        BUILDINFO_ERROR=BUILDINFO_ERROR,
        StaticClientFactory=StaticClientFactory,
        FakeCluster=FakeCluster,
    )


@pytest.fixture
def prometheus_cluster(fake_cluster: FakeCluster) -> FakeCluster:
    """A fake cluster running one verifiable, canonically labelled backend."""
    fake_cluster.pods = [
        make_pod("prometheus-0", "monitoring", labels={"app.kubernetes.io/name": "prometheus"})
    ]
    fake_cluster.route("prometheus-0:9090/proxy/api/v1/status/buildinfo", BUILDINFO_OK)
    return fake_cluster
