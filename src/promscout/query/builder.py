"""
PromQL builders for pod, node and cluster-wide metrics.

All builders are pure: no I/O, no failure mode beyond malformed input.
Resource-identifying values go through escape_label_value() before they
are interpolated.

Optional metrics that have looser alternates are returned as an ordered
list of variants; callers take the first variant that yields data.
"""

from __future__ import annotations

import re

from promscout.query.escaping import escape_label_value, label_matcher
from promscout.query.models import PromQuery

# Infrastructure containers excluded from per-pod usage
_EXCLUDED_CONTAINERS = "POD|istio-proxy|istio-init"

_NODE_EXPORTER = 'job="node-exporter"'
_KSM_SERVICE = 'service="prometheus-operator-kube-state-metrics"'

VPA_TARGET_METRIC = "kube_verticalpodautoscaler_status_recommendation_containerrecommendations_target"
VPA_UPPERBOUND_METRIC = (
    "kube_verticalpodautoscaler_status_recommendation_containerrecommendations_upperbound"
)


def _pod_selector(namespace: str, pod: str) -> str:
    return f"{label_matcher('namespace', namespace)},{label_matcher('pod', pod)}"


def _pod_regex_selector(namespace: str, pod: str) -> str:
    # Regex matchers that only match the literal names.
    ns = label_matcher("namespace", re.escape(namespace), "=~")
    return f"{ns},{label_matcher('pod', re.escape(pod), '=~')}"


# ---------- Pod usage ----------


def pod_cpu_rate(namespace: str, pod: str, window: str = "5m") -> PromQuery:
    """CPU usage in millicores, summed across the pod's containers."""
    sel = _pod_selector(namespace, pod)
    return PromQuery(
        f"1000 * sum by (namespace,pod) (rate(container_cpu_usage_seconds_total"
        f'{{{sel},container!~"{_EXCLUDED_CONTAINERS}"}}[{window}]))',
        metric="cpu_usage",
    )


def pod_memory_working_set(namespace: str, pod: str) -> PromQuery:
    sel = _pod_selector(namespace, pod)
    return PromQuery(
        f"sum by (namespace,pod) (container_memory_working_set_bytes"
        f'{{{sel},container!~"{_EXCLUDED_CONTAINERS}"}})',
        metric="memory_working_set",
    )


def pod_network_receive(namespace: str, pod: str, window: str = "5m") -> PromQuery:
    sel = _pod_selector(namespace, pod)
    return PromQuery(
        f"sum by (namespace,pod) (rate(container_network_receive_bytes_total{{{sel}}}[{window}]))",
        metric="network_receive",
    )


def pod_network_transmit(namespace: str, pod: str, window: str = "5m") -> PromQuery:
    sel = _pod_selector(namespace, pod)
    return PromQuery(
        f"sum by (namespace,pod) (rate(container_network_transmit_bytes_total{{{sel}}}[{window}]))",
        metric="network_transmit",
    )


def pod_cpu_average(namespace: str, pod: str, window: str = "2m") -> PromQuery:
    """Average CPU usage across the pod's containers, in millicores."""
    sel = _pod_regex_selector(namespace, pod)
    return PromQuery(
        f"avg(rate(container_cpu_usage_seconds_total"
        f'{{{sel},endpoint="https-metrics",image!="",container!="POD"}}[{window}]) * 1000)',
        metric="cpu_average",
    )


def pod_cpu_maximum(namespace: str, pod: str, window: str = "2m") -> PromQuery:
    sel = _pod_regex_selector(namespace, pod)
    return PromQuery(
        f"max(rate(container_cpu_usage_seconds_total"
        f'{{{sel},endpoint="https-metrics",image!="",container!="POD"}}[{window}]) * 1000)',
        metric="cpu_maximum",
    )


def pod_memory_usage(namespace: str, pod: str) -> PromQuery:
    """Memory usage bytes; usage_bytes rather than working set, to line up with limit checks."""
    sel = _pod_regex_selector(namespace, pod)
    return PromQuery(
        f"sum(container_memory_usage_bytes"
        f'{{{sel},endpoint="https-metrics",image!="",container!="POD"}})',
        metric="memory_usage",
    )


# ---------- Vertical autoscaling recommendations ----------


def vpa_cpu_target(namespace: str) -> list[PromQuery]:
    """CPU target in cores: unit-filtered query first, then without the unit filter."""
    ns = escape_label_value(namespace)
    return [
        PromQuery(
            f'max by (container) ({VPA_TARGET_METRIC}{{resource="cpu",unit="core",namespace="{ns}"}})',
            metric="cpu_target",
        ),
        PromQuery(
            f'max by (container) ({VPA_TARGET_METRIC}{{resource="cpu",namespace="{ns}"}})',
            metric="cpu_target",
        ),
    ]


def vpa_cpu_upperbound(namespace: str) -> list[PromQuery]:
    """CPU upper bound, already converted to millicores."""
    ns = escape_label_value(namespace)
    return [
        PromQuery(
            f'max({VPA_UPPERBOUND_METRIC}{{resource="cpu",namespace="{ns}"}} * 1000)',
            metric="cpu_upperbound",
        ),
    ]


def vpa_memory_target(namespace: str) -> list[PromQuery]:
    ns = escape_label_value(namespace)
    return [
        PromQuery(
            f'max by (container) ({VPA_TARGET_METRIC}{{resource="memory",unit="byte",namespace="{ns}"}})',
            metric="memory_target",
        ),
        PromQuery(
            f'max by (container) ({VPA_TARGET_METRIC}{{resource="memory",namespace="{ns}"}})',
            metric="memory_target",
        ),
    ]


def vpa_memory_upperbound(namespace: str) -> list[PromQuery]:
    ns = escape_label_value(namespace)
    return [
        PromQuery(
            f'max({VPA_UPPERBOUND_METRIC}{{resource="memory",namespace="{ns}"}})',
            metric="memory_upperbound",
        ),
    ]


# ---------- Node ----------


def node_request_ratio(node: str, resource: str) -> list[PromQuery]:
    """Requested vs allocatable ratio for one node, falling back to the cluster-wide ratio."""
    n = escape_label_value(node)
    metric = f"{resource}_utilization_ratio"
    return [
        PromQuery(
            f'sum(kube_pod_container_resource_requests{{resource="{resource}", node="{n}"}})'
            f' / kube_node_status_allocatable{{resource="{resource}", node="{n}"}}',
            metric=metric,
        ),
        PromQuery(
            f'sum(kube_pod_container_resource_requests{{resource="{resource}"}})'
            f' / sum(kube_node_status_allocatable{{resource="{resource}"}})',
            metric=metric,
        ),
    ]


def node_disk_used() -> list[PromQuery]:
    return [
        PromQuery(
            f"sum(node_filesystem_size_bytes{{{_NODE_EXPORTER}}}"
            f" - node_filesystem_avail_bytes{{{_NODE_EXPORTER}}})",
            metric="disk_used_bytes",
        ),
        PromQuery(
            f"sum(node_filesystem_size_bytes{{{_NODE_EXPORTER}}})"
            f" - sum(node_filesystem_free_bytes{{{_NODE_EXPORTER}}})",
            metric="disk_used_bytes",
        ),
    ]


def node_disk_available() -> list[PromQuery]:
    return [
        PromQuery(
            f"sum(node_filesystem_avail_bytes{{{_NODE_EXPORTER}}})",
            metric="disk_available_bytes",
        ),
        PromQuery(
            f"sum(node_filesystem_free_bytes{{{_NODE_EXPORTER}}})",
            metric="disk_available_bytes",
        ),
    ]


def node_memory_breakdown() -> list[PromQuery]:
    """Used, buffered, cached and free memory bytes."""
    return [
        PromQuery(
            f"sum(node_memory_MemTotal_bytes{{{_NODE_EXPORTER}}}"
            f" - node_memory_MemFree_bytes{{{_NODE_EXPORTER}}}"
            f" - node_memory_Buffers_bytes{{{_NODE_EXPORTER}}}"
            f" - node_memory_Cached_bytes{{{_NODE_EXPORTER}}})",
            metric="memory_used_bytes",
        ),
        PromQuery(f"sum(node_memory_Buffers_bytes{{{_NODE_EXPORTER}}})", metric="memory_buffered_bytes"),
        PromQuery(f"sum(node_memory_Cached_bytes{{{_NODE_EXPORTER}}})", metric="memory_cached_bytes"),
        PromQuery(f"sum(node_memory_MemFree_bytes{{{_NODE_EXPORTER}}})", metric="memory_free_bytes"),
    ]


def node_cpu_aggregated() -> PromQuery:
    return PromQuery(
        f'100 * (1 - avg(rate(node_cpu_seconds_total{{{_NODE_EXPORTER}, mode="idle"}}[5m])))',
        metric="cpu_usage_aggregated",
    )


def _node_join(node: str) -> str:
    return f'on(instance) group_left(nodename) node_uname_info{{nodename="{escape_label_value(node)}"}}'


def node_cpu_percent(node: str) -> PromQuery:
    return PromQuery(
        '100 * (sum by (instance) (rate(node_cpu_seconds_total{mode!="idle",mode!="iowait",mode!="steal"}[5m]))'
        f" / sum by (instance) (rate(node_cpu_seconds_total[5m]))) * {_node_join(node)}",
        metric="cpu_percent",
    )


def node_memory_percent(node: str) -> PromQuery:
    return PromQuery(
        f"100 * (1 - (node_memory_MemAvailable_bytes{{{_NODE_EXPORTER}}}"
        f" / node_memory_MemTotal_bytes{{{_NODE_EXPORTER}}})) * {_node_join(node)}",
        metric="memory_percent",
    )


def node_filesystem_percent(node: str) -> PromQuery:
    fs = 'fstype!~"tmpfs|overlay",mountpoint="/"'
    return PromQuery(
        f"100 * (1 - (node_filesystem_avail_bytes{{{fs}}} / node_filesystem_size_bytes{{{fs}}}))"
        f" * {_node_join(node)}",
        metric="filesystem_percent",
    )


def node_network_receive(node: str) -> PromQuery:
    return PromQuery(
        f'sum by (instance) (rate(node_network_receive_bytes_total{{name!~"lo"}}[5m])) * {_node_join(node)}',
        metric="network_receive",
    )


def node_network_transmit(node: str) -> PromQuery:
    return PromQuery(
        f'sum by (instance) (rate(node_network_transmit_bytes_total{{name!~"lo"}}[5m])) * {_node_join(node)}',
        metric="network_transmit",
    )


def node_pods_capacity(node: str) -> PromQuery:
    n = escape_label_value(node)
    return PromQuery(f'max by (node) (kube_node_status_capacity{{resource="pods",node="{n}"}})')


def node_pods_running(node: str) -> PromQuery:
    n = escape_label_value(node)
    return PromQuery(f'max by (node) (kubelet_running_pod_count{{node="{n}"}})')


# ---------- Cluster ----------


def cluster_ready_nodes() -> PromQuery:
    return PromQuery(
        'sum(kube_node_status_condition{condition="Ready",status="true"} == 1)',
        metric="node_count",
    )


def cluster_packing(resource: str) -> PromQuery:
    """Percentage of allocatable ``resource`` requested by running pods."""
    return PromQuery(
        f'sum(kube_pod_container_resource_requests{{resource="{resource}", {_KSM_SERVICE}}}'
        f" * on (pod,instance,uid) group_left () "
        f'kube_pod_status_phase{{{_KSM_SERVICE}, phase="Running"}})'
        f'/sum(kube_node_status_allocatable{{resource="{resource}",endpoint="http"}})*100',
        metric=f"{resource}_packing",
    )


def cluster_allocatable_total(resource: str) -> PromQuery:
    return PromQuery(f'sum(kube_node_status_allocatable{{resource="{resource}"}})')


def cluster_requests_total(resource: str) -> PromQuery:
    return PromQuery(f'sum(kube_pod_container_resource_requests{{resource="{resource}"}})')


def cluster_pods_capacity() -> list[PromQuery]:
    """Pod capacity: unit-qualified, then unqualified, then the pre-2.0 kube-state-metrics name."""
    return [
        PromQuery('sum(kube_node_status_capacity{resource="pods",unit="integer"})'),
        PromQuery('sum(kube_node_status_capacity{resource="pods"})'),
        PromQuery("sum(kube_node_status_capacity_pods)"),
    ]


def cluster_pods_present() -> PromQuery:
    return PromQuery("sum(max by (namespace,pod) (kube_pod_status_phase == 1))")
