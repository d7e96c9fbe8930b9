import asyncio
from unittest.mock import MagicMock, patch

import pytest
import urllib3
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from promscout.cluster import ClusterClient, KubeconfigClientFactory
from promscout.core.errors import ConfigurationError, ProxyError


@pytest.fixture
def api_client() -> MagicMock:
    return MagicMock()


@pytest.mark.asyncio
async def test_raw_get_returns_body(api_client) -> None:
    api_client.call_api.return_value = MagicMock(data=b'{"status":"success"}')
    cluster = ClusterClient(api_client, request_timeout=7.0)

    body = await cluster.raw_get("/api/v1/namespaces/m/pods/p:9090/proxy/api/v1/query", {"query": "up"})

    assert body == b'{"status":"success"}'
    args, kwargs = api_client.call_api.call_args
    assert args == ("/api/v1/namespaces/m/pods/p:9090/proxy/api/v1/query", "GET")
    assert kwargs["query_params"] == [("query", "up")]
    assert kwargs["_preload_content"] is False
    assert kwargs["_request_timeout"] == 7.0


@pytest.mark.asyncio
async def test_raw_get_wraps_api_errors(api_client) -> None:
    api_client.call_api.side_effect = ApiException(status=503, reason="Service Unavailable")
    cluster = ClusterClient(api_client)

    with pytest.raises(ProxyError) as exc_info:
        await cluster.raw_get("/x")

    assert exc_info.value.details["status"] == 503


@pytest.mark.asyncio
async def test_raw_get_wraps_transport_errors(api_client) -> None:
    api_client.call_api.side_effect = urllib3.exceptions.ReadTimeoutError(None, "/x", "timed out")
    cluster = ClusterClient(api_client)

    with pytest.raises(ProxyError):
        await cluster.raw_get("/x", timeout=1.0)


@pytest.mark.asyncio
async def test_list_pods_all_namespaces_and_scoped(api_client) -> None:
    cluster = ClusterClient(api_client)
    core = MagicMock()
    core.list_pod_for_all_namespaces.return_value = MagicMock(items=["a"])
    core.list_namespaced_pod.return_value = MagicMock(items=["b"])

    with patch.object(ClusterClient, "core_api", new=core):
        assert await cluster.list_pods(label_selector="x=y") == ["a"]
        assert await cluster.list_pods(namespace="monitoring") == ["b"]

    assert core.list_pod_for_all_namespaces.call_args.kwargs["label_selector"] == "x=y"
    assert core.list_namespaced_pod.call_args.args[0] == "monitoring"


@pytest.mark.asyncio
async def test_metrics_api_probe(api_client) -> None:
    cluster = ClusterClient(api_client)

    with patch("promscout.cluster.client.client.CustomObjectsApi") as custom:
        custom.return_value.list_cluster_custom_object.return_value = {"items": []}
        assert await cluster.metrics_api_available(0.8)

        custom.return_value.list_cluster_custom_object.side_effect = ApiException(status=404)
        assert not await cluster.metrics_api_available(0.8)


def test_factory_requires_config() -> None:
    factory = KubeconfigClientFactory({"prod": "/etc/kube/prod.yaml"})

    with pytest.raises(ConfigurationError, match="config parameter is required"):
        factory.get_client("")
    with pytest.raises(ConfigurationError, match="config not found"):
        factory.get_client("staging")


def test_factory_caches_clients_per_cluster() -> None:
    factory = KubeconfigClientFactory({"prod": "/etc/kube/prod.yaml"}, request_timeout=5.0)

    with patch("promscout.cluster.factory.config.new_client_from_config") as new_client:
        new_client.side_effect = lambda **kwargs: MagicMock()
        first = factory.get_client("prod", "east")
        second = factory.get_client("prod", "east")
        other = factory.get_client("prod", "west")

    assert first is second
    assert first is not other
    assert first.name == "east"
    assert new_client.call_count == 2
    new_client.assert_any_call(config_file="/etc/kube/prod.yaml", context="east")


def test_factory_load_failure_is_configuration_error() -> None:
    factory = KubeconfigClientFactory({"prod": "/missing.yaml"})

    with patch(
        "promscout.cluster.factory.config.new_client_from_config",
        side_effect=ConfigException("Invalid kube-config file"),
    ):
        with pytest.raises(ConfigurationError, match="Failed to get Kubernetes client"):
            factory.get_client("prod", "east")


def test_factory_close_closes_clients() -> None:
    factory = KubeconfigClientFactory({"prod": "/etc/kube/prod.yaml"})
    api_client = MagicMock()

    with patch("promscout.cluster.factory.config.new_client_from_config", return_value=api_client):
        factory.get_client("prod")
    factory.close()

    api_client.close.assert_called_once()


def test_run_sync_uses_running_loop(api_client) -> None:
    cluster = ClusterClient(api_client)

    assert asyncio.run(cluster._run_sync(lambda x: x * 2, 21)) == 42
