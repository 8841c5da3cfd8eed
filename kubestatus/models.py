"""
Data models for Kubestatus.

This module defines the data structures used throughout Kubestatus. It provides
type-safe representations of workloads, pods, containers, resource usage,
probes, events and the computed health status.

Key Models:
- Workload: A controller (or standalone pod) and its member pods
- Pod: Pod information, containers, events and health
- Container: Runtime state, resources, probes, volumes and environment
- ResourceInfo: Requests, limits, usage and usage percentages
- ProbeInfo: Liveness, readiness and startup probe details
- HealthStatus: Computed health level, reason and score
- EventInfo: Kubernetes event representation
- ClusterSnapshot: Read-only bulk metrics and events for one collection
- StatusOptions / CollectOptions: Recognized configuration options

All models use dataclasses for clean, type-safe data structures with proper
default values and field definitions.

Example:
    ```python
    pod = Pod(
        name="web-7d9f8-abcde",
        namespace="default",
        status="Running",
        containers=[Container(name="app", status="Running", ready=True)]
    )
    ```
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .constants import DEFAULT_MAX_WORKERS, DEFAULT_SORT_KEY


class ContainerType(str, Enum):
    """Kind of container within a pod; status derivation differs per kind."""

    INIT = "init"
    STANDARD = "standard"
    EPHEMERAL = "ephemeral"


class ContainerStatus(str, Enum):
    """Container status values derived from the container state."""

    RUNNING = "Running"
    WAITING = "Waiting"
    TERMINATED = "Terminated"
    COMPLETED = "Completed"
    UNKNOWN = "Unknown"


class HealthLevel(str, Enum):
    """Health levels, from best to worst."""

    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    CRITICAL = "Critical"


class PodStatus(str, Enum):
    """Pod lifecycle status; TERMINATING is derived from the deletion timestamp."""

    RUNNING = "Running"
    PENDING = "Pending"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"
    TERMINATING = "Terminating"


@dataclass
class HealthStatus:
    """
    Computed health of a container, pod or workload.

    Attributes:
        level: Healthy, Degraded or Critical
        reason: Short human-readable explanation (empty for a healthy container)
        score: Integer score between 0 and 100
    """
    level: HealthLevel = HealthLevel.HEALTHY
    reason: str = ""
    score: int = 100


@dataclass
class ResourceInfo:
    """
    Container resource requests, limits and live usage.

    Percentages are relative to the limit and are 0 when the limit is absent
    or zero, or when no metrics are available for the container.

    Example:
        ```python
        resources = ResourceInfo(
            cpu_request="100m", cpu_limit="200m", cpu_usage="150m", cpu_percentage=75.0,
            mem_request="128Mi", mem_limit="256Mi", mem_usage="64Mi", mem_percentage=25.0
        )
        ```
    """
    cpu_request: str = ""
    cpu_limit: str = ""
    cpu_usage: str = "0m"
    cpu_percentage: float = 0.0
    mem_request: str = ""
    mem_limit: str = ""
    mem_usage: str = "0Mi"
    mem_percentage: float = 0.0


@dataclass
class ProbeDetails:
    """Configuration and status of a single probe."""
    configured: bool = False
    type: str = ""
    path: str = ""
    port: str = ""
    passing: bool = False


@dataclass
class ProbeInfo:
    """
    Liveness, readiness and startup probes of a container.

    Readiness ``passing`` mirrors the container's ready flag. Liveness and
    startup have no independent result source in the API and are reported as
    passing whenever configured.
    """
    liveness: ProbeDetails = field(default_factory=ProbeDetails)
    readiness: ProbeDetails = field(default_factory=ProbeDetails)
    startup: ProbeDetails = field(default_factory=ProbeDetails)


@dataclass
class PortInfo:
    name: str
    container_port: int
    protocol: str = "TCP"


@dataclass
class VolumeInfo:
    """
    Volume mount of a container and the kind of its backing source.

    Attributes:
        name: Volume name
        mount_path: Path inside the container
        volume_type: ConfigMap, Secret, PVC, EmptyDir or Other
        details: Source reference, e.g. "configmap/app-config"
        read_only: Whether the mount is read-only
    """
    name: str
    mount_path: str
    volume_type: str = "Other"
    details: str = "unknown"
    read_only: bool = False


@dataclass
class EnvVar:
    """
    Container environment variable.

    ``value`` holds the literal value, a resolved field reference, or a
    bracketed reference such as ``[configMap:app/LEVEL]``. Masked variables
    always display ``***``.
    """
    name: str
    value: str = ""
    masked: bool = False


@dataclass
class Container:
    """
    Complete container information.

    Attributes:
        name: Container name
        type: init, standard or ephemeral
        status: Running, Waiting, Terminated, Completed, Unknown, or a waiting
            reason such as CrashLoopBackOff
        ready: Whether the container is ready
        restart_count: Number of restarts reported by the kubelet
        last_state: Terminated, Waiting or None
        last_state_reason: Reason of the previous state
        exit_code: Exit code of the current or previous termination, if any
        started_at: Start time of the current run
        finished_at: Finish time when terminated
        last_restart_time: Start time of the current run when it is a restart
        termination_reason: Reason of the current termination, e.g. OOMKilled
        logs: Recent log lines (single-pod views only)

    Example:
        ```python
        container = Container(
            name="app",
            type=ContainerType.STANDARD,
            status="CrashLoopBackOff",
            restart_count=5,
            last_state="Terminated",
            last_state_reason="Error",
            exit_code=1
        )
        ```
    """
    name: str
    type: ContainerType = ContainerType.STANDARD
    status: str = ContainerStatus.UNKNOWN.value
    ready: bool = False
    restart_count: int = 0
    last_state: str = "None"
    last_state_reason: str = ""
    exit_code: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_restart_time: Optional[datetime] = None
    termination_reason: str = ""
    image: str = ""
    command: List[str] = field(default_factory=list)
    args: List[str] = field(default_factory=list)
    ports: List[PortInfo] = field(default_factory=list)
    resources: ResourceInfo = field(default_factory=ResourceInfo)
    probes: ProbeInfo = field(default_factory=ProbeInfo)
    volumes: List[VolumeInfo] = field(default_factory=list)
    environment: List[EnvVar] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)


@dataclass
class PodCondition:
    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass
class NetworkInfo:
    host_network: bool = False
    pod_ip: str = ""
    pod_ips: List[str] = field(default_factory=list)
    host_ip: str = ""


@dataclass
class ContainerUsage:
    """Raw usage quantities of one container as reported by metrics-server."""
    cpu_usage: str = ""
    memory_usage: str = ""


@dataclass
class PodMetrics:
    containers: Dict[str, ContainerUsage] = field(default_factory=dict)


@dataclass
class EventInfo:
    """
    Kubernetes event related to a pod.

    Attributes:
        time: Effective timestamp (most recent observation available)
        type: Event type (Normal, Warning, ...)
        reason: Event reason code
        message: Human-readable event message
        pod_name: Pod the event relates to
        count: Number of occurrences reported by the API
    """
    time: datetime
    type: str
    reason: str
    message: str
    pod_name: str
    count: int = 1


@dataclass
class Pod:
    """
    Complete pod information and metadata.

    ``status`` is the pod phase, except that ``Terminating`` takes precedence
    whenever the pod carries a deletion timestamp.

    Example:
        ```python
        pod = Pod(
            name="api-server-123",
            namespace="default",
            node_name="node-a",
            status="Running",
            containers=[container]
        )
        ```
    """
    name: str
    namespace: str
    node_name: str = ""
    service_account: str = ""
    created_at: Optional[datetime] = None
    age_seconds: int = 0
    status: str = PodStatus.UNKNOWN.value
    init_containers: List[Container] = field(default_factory=list)
    containers: List[Container] = field(default_factory=list)
    ephemeral_containers: List[Container] = field(default_factory=list)
    conditions: List[PodCondition] = field(default_factory=list)
    network: NetworkInfo = field(default_factory=NetworkInfo)
    metrics: Optional[PodMetrics] = None
    events: List[EventInfo] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    health: HealthStatus = field(default_factory=HealthStatus)

    def all_containers(self) -> List[Container]:
        """Init containers followed by standard containers, in spec order."""
        return list(self.init_containers) + list(self.containers)

    def total_restarts(self) -> int:
        return sum(c.restart_count for c in self.all_containers())

    def with_container_filter(self, container_name: Optional[str]) -> "Pod":
        """Return a copy showing only containers named ``container_name``."""
        if not container_name:
            return self
        return replace(
            self,
            init_containers=[c for c in self.init_containers if c.name == container_name],
            containers=[c for c in self.containers if c.name == container_name],
            ephemeral_containers=[c for c in self.ephemeral_containers if c.name == container_name],
        )


@dataclass
class Workload:
    """
    A controller (or standalone pod) and its member pods.

    Attributes:
        kind: Pod, Deployment, StatefulSet, DaemonSet or Job
        name: Workload name
        namespace: Workload namespace
        replicas: Replica display string, e.g. "2/3"
        ready_replicas: Ready (or succeeded, for Jobs) replica count
        desired_replicas: Desired replica count
        labels: Workload labels
        selector: Label selector string used to list member pods
        pods: Member pods in listing order
        health: Aggregated workload health

    Example:
        ```python
        workload = Workload(
            kind="Deployment", name="web", namespace="prod",
            replicas="3/3", ready_replicas=3, desired_replicas=3,
            selector="app=web"
        )
        ```
    """
    kind: str
    name: str
    namespace: str
    replicas: str = "0/0"
    ready_replicas: int = 0
    desired_replicas: int = 0
    labels: Dict[str, str] = field(default_factory=dict)
    selector: str = ""
    pods: List[Pod] = field(default_factory=list)
    health: HealthStatus = field(default_factory=HealthStatus)

    @property
    def key(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ClusterSnapshot:
    """
    Read-only bulk data fetched once per collection.

    Every per-pod task receives the same snapshot; the mappings are exposed
    through ``MappingProxyType`` so tasks cannot modify them.

    Attributes:
        metrics: Pod name -> container name -> usage
        events: Pod name -> events within the lookback window, oldest first
    """
    metrics: Mapping[str, PodMetrics] = field(default_factory=lambda: MappingProxyType({}))
    events: Mapping[str, Tuple[EventInfo, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        metrics: Optional[Dict[str, PodMetrics]],
        events: Optional[Dict[str, List[EventInfo]]],
    ) -> "ClusterSnapshot":
        return cls(
            metrics=MappingProxyType(dict(metrics or {})),
            events=MappingProxyType({k: tuple(v) for k, v in (events or {}).items()}),
        )

    def metrics_for(self, pod_name: str) -> Optional[PodMetrics]:
        return self.metrics.get(pod_name)

    def events_for(self, pod_name: str) -> List[EventInfo]:
        return list(self.events.get(pod_name, ()))


@dataclass
class CollectOptions:
    """
    Capability toggles for a single collection.

    Attributes:
        collect_metrics: Bulk-fetch pod metrics for usage percentages
        collect_events: Use the 1 hour event window instead of 5 minutes
        collect_logs: Tail recent logs of running containers
        extended_detail: Resolve volumes, environment and ephemeral containers
        container_filter: Container name to display (applied after analysis)
        single_pod_view: Collection targets a standalone pod
    """
    collect_metrics: bool = True
    collect_events: bool = False
    collect_logs: bool = False
    extended_detail: bool = False
    container_filter: Optional[str] = None
    single_pod_view: bool = False


@dataclass
class StatusOptions:
    """
    Recognized options for one status invocation.

    Example:
        ```python
        options = StatusOptions(
            namespace="prod",
            resource_name="deployment/web",
            show_events=True,
            problematic=True
        )
        ```
    """
    namespace: str = ""
    all_namespaces: bool = False
    selector: str = ""
    resource_type: str = ""
    resource_name: str = ""
    show_events: bool = False
    show_logs: bool = False
    show_env: bool = False
    extended_detail: bool = False
    container_filter: Optional[str] = None
    single_pod_view: bool = False
    problematic: bool = False
    sort_by: str = DEFAULT_SORT_KEY
    max_workers: int = DEFAULT_MAX_WORKERS

    def for_workload(self, workload: Workload) -> "StatusOptions":
        """Copy of these options with ``single_pod_view`` set for ``workload``."""
        return replace(self, single_pod_view=workload.kind == "Pod")

    def collect_options(self) -> CollectOptions:
        """Derive collection toggles; logs are only tailed in single-pod views."""
        return CollectOptions(
            collect_metrics=True,
            collect_events=self.show_events,
            collect_logs=self.show_logs and self.single_pod_view,
            extended_detail=self.extended_detail or self.show_env or self.single_pod_view,
            container_filter=self.container_filter,
            single_pod_view=self.single_pod_view,
        )
