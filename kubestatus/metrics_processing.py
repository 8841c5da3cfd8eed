"""
Metrics processing and transformation utilities.

This module turns Kubernetes resource quantities and metrics-server data into
the values shown by Kubestatus. It handles CPU and memory quantity parsing,
kubectl-top style formatting, percentage calculations and indexing of the
bulk pod metrics list.

Key Functions:
- parse_cpu_millicores: Parse a CPU quantity to millicores
- parse_memory_bytes: Parse a memory quantity to bytes
- format_cpu / format_memory: Human-readable quantities like ``kubectl top``
- calculate_percentage: Usage as a percentage of a limit, 0 without a limit
- index_pod_metrics: Index a metrics.k8s.io list by pod and container name
- build_resource_info: Combine requests, limits and usage for one container

Quantities are parsed with ``kubernetes.utils.parse_quantity`` so every suffix
the API server accepts (n, u, m, k, M, G, Ki, Mi, Gi, Ti, exponents) is handled.

Example:
    ```python
    index = index_pod_metrics(metrics_list)
    usage = index["web-1"].containers["app"]
    pct = calculate_percentage(parse_cpu_millicores(usage.cpu_usage), parse_cpu_millicores("500m"))
    ```
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from kubernetes.utils import parse_quantity

from .models import ContainerUsage, PodMetrics, ResourceInfo

KI = 1024
MI = KI * 1024
GI = MI * 1024
TI = GI * 1024


def _parse(value: Optional[str]) -> Optional[Decimal]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return parse_quantity(str(value).strip())
    except (ValueError, TypeError, ArithmeticError):
        return None


def parse_cpu_millicores(value: Optional[str]) -> Optional[float]:
    """Parse CPU value from Kubernetes format to millicores (None if unparseable)."""
    quantity = _parse(value)
    if quantity is None:
        return None
    return float(quantity * 1000)


def parse_memory_bytes(value: Optional[str]) -> Optional[float]:
    """Parse memory value from Kubernetes format to bytes (None if unparseable)."""
    quantity = _parse(value)
    if quantity is None:
        return None
    return float(quantity)


def format_cpu(value: Optional[str]) -> str:
    """Format a CPU quantity as millicores below one core, otherwise as cores."""
    milli = parse_cpu_millicores(value)
    if milli is None:
        return value or ""
    milli = int(milli)
    if milli >= 1000:
        cores = milli / 1000.0
        if cores >= 10:
            return f"{cores:.0f}"
        return f"{cores:.1f}"
    return f"{milli}m"


def format_memory(value: Optional[str]) -> str:
    """Format a memory quantity using the largest binary unit that fits."""
    size = parse_memory_bytes(value)
    if size is None:
        return value or ""
    size = int(size)
    if size >= TI:
        return f"{size / TI:.1f}Ti"
    if size >= GI:
        return f"{size / GI:.1f}Gi"
    if size >= MI:
        return f"{size // MI}Mi"
    if size >= KI:
        return f"{size // KI}Ki"
    return str(size)


def calculate_percentage(usage: Optional[float], limit: Optional[float]) -> float:
    """Usage as a percentage of limit; 0 when either side is missing or the limit is zero."""
    if usage is None or not limit or limit <= 0:
        return 0.0
    return usage / limit * 100


def index_pod_metrics(metrics_list: Optional[Dict[str, Any]]) -> Dict[str, PodMetrics]:
    """Index a metrics.k8s.io PodMetricsList by pod name, then container name."""
    result: Dict[str, PodMetrics] = {}
    if not metrics_list:
        return result
    for item in metrics_list.get("items", []) or []:
        pod_name = (item.get("metadata") or {}).get("name")
        if not pod_name:
            continue
        containers = {}
        for c in item.get("containers", []) or []:
            usage = c.get("usage") or {}
            containers[c.get("name", "")] = ContainerUsage(
                cpu_usage=usage.get("cpu", "") or "",
                memory_usage=usage.get("memory", "") or "",
            )
        result[pod_name] = PodMetrics(containers=containers)
    return result


def _quantity_map(value: Any) -> Dict[str, str]:
    return {k: str(v) for k, v in (value or {}).items()}


def build_resource_info(container_spec: Any, usage: Optional[ContainerUsage]) -> ResourceInfo:
    """
    Build ResourceInfo for one container from its spec and optional usage.

    CPU percentage is usage millicores over limit millicores, memory
    percentage is usage bytes over limit bytes. Both stay 0 without a limit or
    without metrics for the container.
    """
    info = ResourceInfo()
    resources = getattr(container_spec, "resources", None)
    requests = _quantity_map(getattr(resources, "requests", None))
    limits = _quantity_map(getattr(resources, "limits", None))

    if requests.get("cpu"):
        info.cpu_request = format_cpu(requests["cpu"])
    if requests.get("memory"):
        info.mem_request = format_memory(requests["memory"])
    if limits.get("cpu"):
        info.cpu_limit = format_cpu(limits["cpu"])
    if limits.get("memory"):
        info.mem_limit = format_memory(limits["memory"])

    if usage is None:
        return info

    if usage.cpu_usage:
        info.cpu_usage = format_cpu(usage.cpu_usage)
        info.cpu_percentage = calculate_percentage(
            parse_cpu_millicores(usage.cpu_usage), parse_cpu_millicores(limits.get("cpu"))
        )
    if usage.memory_usage:
        info.mem_usage = format_memory(usage.memory_usage)
        info.mem_percentage = calculate_percentage(
            parse_memory_bytes(usage.memory_usage), parse_memory_bytes(limits.get("memory"))
        )
    return info
