import asyncio

import pytest
from kubernetes.client.exceptions import ApiException
from promscout.core.errors import DiscoveryUnavailable, ProxyError
from promscout.discovery.engine import DiscoveryEngine
from promscout.discovery.models import InstanceTarget, ServiceTarget
from promscout.discovery.proxy import ProxyClient

PROM_LABELS = {"app.kubernetes.io/name": "prometheus"}


@pytest.fixture
def engine() -> DiscoveryEngine:
    return DiscoveryEngine(ProxyClient(), verify_timeout=1.0)


@pytest.mark.asyncio
async def test_canonical_label_short_circuits(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [helpers.make_pod("prometheus-k8s-0", "monitoring", labels=PROM_LABELS)]
    fake_cluster.route("prometheus-k8s-0:9090/proxy/api/v1/status/buildinfo", helpers.BUILDINFO_OK)

    target = await engine.discover(fake_cluster, 4.0)

    assert target == InstanceTarget("monitoring", "prometheus-k8s-0", 9090)
    assert fake_cluster.list_calls == [
        {"namespace": None, "label_selector": "app.kubernetes.io/name=prometheus"}
    ]
    assert len(fake_cluster.calls) == 1


@pytest.mark.asyncio
async def test_non_success_candidate_is_skipped(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [
        helpers.make_pod("prometheus-a", "monitoring", labels=PROM_LABELS),
        helpers.make_pod("prometheus-b", "monitoring", labels=PROM_LABELS),
    ]
    fake_cluster.route("prometheus-a:9090/", helpers.BUILDINFO_ERROR)
    fake_cluster.route("prometheus-b:9090/", helpers.BUILDINFO_OK)

    target = await engine.discover(fake_cluster, 4.0)

    assert target.pod == "prometheus-b"


@pytest.mark.asyncio
async def test_falls_back_to_namespace_scan(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [helpers.make_pod("prom-server-0", "observability", ports=[("http", 9090)])]
    fake_cluster.route("prom-server-0:9090/", helpers.BUILDINFO_OK)

    target = await engine.discover(fake_cluster, 4.0)

    assert target == InstanceTarget("observability", "prom-server-0", 9090)


@pytest.mark.asyncio
async def test_all_namespace_scan_finds_unconventional_namespace(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [helpers.make_pod("prometheus-0", "team-metrics")]
    fake_cluster.route("team-metrics/pods/prometheus-0:9090/", helpers.BUILDINFO_OK)

    target = await engine.discover(fake_cluster, 4.0)

    assert target.namespace == "team-metrics"


@pytest.mark.asyncio
async def test_service_scan_is_last_resort(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [helpers.make_pod("prometheus-0", "monitoring", labels=PROM_LABELS)]
    fake_cluster.services = [helpers.make_service("prometheus-operated", "monitoring")]
    fake_cluster.route("services/prometheus-operated:web/", helpers.BUILDINFO_OK)

    target = await engine.discover(fake_cluster, 4.0)

    assert target == ServiceTarget("monitoring", "prometheus-operated", "web", 9090)


@pytest.mark.asyncio
async def test_candidates_verified_once(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [helpers.make_pod("prometheus-0", "monitoring", labels=PROM_LABELS)]

    with pytest.raises(DiscoveryUnavailable):
        await engine.discover(fake_cluster, 4.0)

    probes = [path for path, _ in fake_cluster.calls if "prometheus-0" in path]
    assert len(probes) == 1


@pytest.mark.asyncio
async def test_nothing_found_raises(engine, fake_cluster) -> None:
    with pytest.raises(DiscoveryUnavailable) as exc_info:
        await engine.discover(fake_cluster, 4.0)

    assert exc_info.value.message == "prometheus not available"


@pytest.mark.asyncio
async def test_list_errors_do_not_abort(engine, fake_cluster, helpers) -> None:
    fake_cluster.list_errors["pods"] = ApiException(status=403, reason="Forbidden")
    fake_cluster.services = [helpers.make_service("prometheus", "monitoring")]
    fake_cluster.route("services/prometheus:web/", helpers.BUILDINFO_OK)

    target = await engine.discover(fake_cluster, 4.0)

    assert target.is_service


@pytest.mark.asyncio
async def test_budget_exhaustion_is_unavailable(engine, fake_cluster, helpers) -> None:
    async def slow_list_pods(namespace=None, label_selector=None):
        await asyncio.sleep(5)
        return []

    fake_cluster.list_pods = slow_list_pods

    with pytest.raises(DiscoveryUnavailable) as exc_info:
        await engine.discover(fake_cluster, 0.05)

    assert exc_info.value.details == {"reason": "timeout"}


@pytest.mark.asyncio
async def test_verify_rejects_transport_errors(engine, fake_cluster) -> None:
    fake_cluster.route("buildinfo", ProxyError("API server returned 503: Service Unavailable"))

    assert not await engine.verify(fake_cluster, InstanceTarget("ns", "p", 9090))


@pytest.mark.asyncio
async def test_verify_rejects_garbage(engine, fake_cluster) -> None:
    fake_cluster.route("buildinfo", b"<html>not prometheus</html>")

    assert not await engine.verify(fake_cluster, InstanceTarget("ns", "p", 9090))


@pytest.mark.asyncio
async def test_detect_presence(engine, fake_cluster, helpers) -> None:
    assert not await engine.detect_presence(fake_cluster)

    fake_cluster.services = [helpers.make_service("kube-prometheus-stack-prometheus", "monitoring")]
    assert await engine.detect_presence(fake_cluster)


@pytest.mark.asyncio
async def test_detect_presence_by_container(engine, fake_cluster, helpers) -> None:
    fake_cluster.pods = [helpers.make_pod("metrics-0", "x", phase="CrashLoopBackOff")]

    assert await engine.detect_presence(fake_cluster)


@pytest.mark.asyncio
async def test_caller_cancellation_propagates(engine, fake_cluster) -> None:
    started = asyncio.Event()

    async def slow_list_pods(namespace=None, label_selector=None):
        started.set()
        await asyncio.sleep(5)
        return []

    fake_cluster.list_pods = slow_list_pods
    task = asyncio.create_task(engine.discover(fake_cluster, 10.0))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
