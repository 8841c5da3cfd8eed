"""
Pod data processing and transformation utilities.

This module turns Kubernetes pod objects (``kubernetes.client.V1Pod``) into
Kubestatus models. It derives pod and container status, probe and port
details, volume sources and environment variables with value references
resolved and sensitive values masked.

Key Functions:
- pod_status: Pod phase, with Terminating taking precedence on deletion
- build_container: Container model from its spec and status entry
- extract_probe_info: Probe configuration and pass/fail flags
- extract_volumes: Volume mounts and the kind of their backing source
- extract_env_vars: Environment variables with references resolved and masked
- extract_conditions / extract_network: Pod-level conditions and addresses

Example:
    ```python
    container = build_container(spec, pod, ContainerType.STANDARD, usage, extended=True)
    print(f"{container.name}: {container.status} (restarts={container.restart_count})")
    ```
"""

from typing import Any, List, Optional

from .constants import MASKED_VALUE, SENSITIVE_ENV_PATTERNS
from .metrics_processing import build_resource_info
from .models import (
    Container, ContainerStatus, ContainerType, ContainerUsage, EnvVar, NetworkInfo,
    PodCondition, PodStatus, PortInfo, ProbeDetails, ProbeInfo, VolumeInfo,
)


def pod_status(pod: Any) -> str:
    """Pod phase as a string; a deletion timestamp always yields Terminating."""
    if getattr(pod.metadata, "deletion_timestamp", None) is not None:
        return PodStatus.TERMINATING.value
    phase = getattr(pod.status, "phase", None) if pod.status else None
    return phase or PodStatus.UNKNOWN.value


def find_container_status(pod: Any, name: str, container_type: ContainerType) -> Optional[Any]:
    """Locate the status entry for container ``name`` in the list matching its type."""
    status = pod.status
    if status is None:
        return None
    if container_type == ContainerType.INIT:
        statuses = status.init_container_statuses
    elif container_type == ContainerType.EPHEMERAL:
        statuses = getattr(status, "ephemeral_container_statuses", None)
    else:
        statuses = status.container_statuses
    for cstat in statuses or []:
        if cstat.name == name:
            return cstat
    return None


def apply_container_state(container: Container, cstat: Any) -> None:
    """
    Fill status fields of ``container`` from its container-status entry.

    An init container terminated with exit code 0 is Completed; every other
    termination is Terminated. When the current state has no exit code the
    exit code of the previous termination is used.
    """
    container.ready = bool(cstat.ready)
    container.restart_count = cstat.restart_count or 0

    state = cstat.state
    running = getattr(state, "running", None) if state else None
    waiting = getattr(state, "waiting", None) if state else None
    terminated = getattr(state, "terminated", None) if state else None

    if running is not None:
        container.status = ContainerStatus.RUNNING.value
        container.started_at = running.started_at
        if container.restart_count > 0:
            container.last_restart_time = running.started_at
    elif waiting is not None:
        container.status = waiting.reason or ContainerStatus.WAITING.value
    elif terminated is not None:
        if container.type == ContainerType.INIT and terminated.exit_code == 0:
            container.status = ContainerStatus.COMPLETED.value
        else:
            container.status = ContainerStatus.TERMINATED.value
        container.exit_code = terminated.exit_code
        container.started_at = terminated.started_at
        container.finished_at = terminated.finished_at
        container.termination_reason = terminated.reason or ""
        if container.restart_count > 0:
            container.last_restart_time = terminated.started_at
    else:
        container.status = ContainerStatus.UNKNOWN.value

    last = cstat.last_state
    last_terminated = getattr(last, "terminated", None) if last else None
    last_waiting = getattr(last, "waiting", None) if last else None
    if last_terminated is not None:
        container.last_state = "Terminated"
        container.last_state_reason = last_terminated.reason or ""
        if container.exit_code is None:
            container.exit_code = last_terminated.exit_code
    elif last_waiting is not None:
        container.last_state = "Waiting"
        container.last_state_reason = last_waiting.reason or ""
    else:
        container.last_state = "None"
        container.last_state_reason = ""


def _probe_details(probe: Any) -> ProbeDetails:
    details = ProbeDetails(configured=True)
    if getattr(probe, "http_get", None):
        details.type = "HTTP"
        details.path = probe.http_get.path or ""
        details.port = str(probe.http_get.port)
    elif getattr(probe, "tcp_socket", None):
        details.type = "TCP"
        details.port = str(probe.tcp_socket.port)
    elif getattr(probe, "_exec", None) or getattr(probe, "var_exec", None):
        details.type = "Exec"
    elif getattr(probe, "grpc", None):
        details.type = "GRPC"
        details.port = str(probe.grpc.port)
    return details


def extract_probe_info(container_spec: Any, cstat: Optional[Any]) -> ProbeInfo:
    """
    Probe configuration for a container.

    Readiness ``passing`` mirrors the status ``ready`` flag. The API exposes no
    liveness or startup probe results, so those are reported as passing.
    """
    info = ProbeInfo()
    if getattr(container_spec, "liveness_probe", None):
        info.liveness = _probe_details(container_spec.liveness_probe)
        info.liveness.passing = True
    if getattr(container_spec, "readiness_probe", None):
        info.readiness = _probe_details(container_spec.readiness_probe)
        info.readiness.passing = bool(cstat.ready) if cstat is not None else False
    if getattr(container_spec, "startup_probe", None):
        info.startup = _probe_details(container_spec.startup_probe)
        info.startup.passing = True
    return info


def extract_ports(container_spec: Any) -> List[PortInfo]:
    ports = []
    for p in getattr(container_spec, "ports", None) or []:
        ports.append(PortInfo(name=p.name or "", container_port=p.container_port, protocol=p.protocol or "TCP"))
    return ports


def extract_volumes(container_spec: Any, pod: Any) -> List[VolumeInfo]:
    """Volume mounts of a container, classified by the pod volume backing each one."""
    pod_volumes = {v.name: v for v in (getattr(pod.spec, "volumes", None) or [])}
    volumes = []
    for mount in getattr(container_spec, "volume_mounts", None) or []:
        info = VolumeInfo(name=mount.name, mount_path=mount.mount_path, read_only=bool(mount.read_only))
        volume = pod_volumes.get(mount.name)
        if volume is not None:
            if volume.config_map:
                info.volume_type = "ConfigMap"
                info.details = f"configmap/{volume.config_map.name}"
            elif volume.secret:
                info.volume_type = "Secret"
                info.details = f"secret/{volume.secret.secret_name}"
            elif volume.persistent_volume_claim:
                info.volume_type = "PVC"
                info.details = f"pvc/{volume.persistent_volume_claim.claim_name}"
            elif volume.empty_dir:
                info.volume_type = "EmptyDir"
                info.details = "emptyDir"
        volumes.append(info)
    return volumes


def is_sensitive_env_var(name: str) -> bool:
    upper = (name or "").upper()
    return any(pattern in upper for pattern in SENSITIVE_ENV_PATTERNS)


def _resolve_field_ref(field_path: str, pod: Any) -> str:
    metadata = pod.metadata
    spec = pod.spec
    status = pod.status
    values = {
        "metadata.name": metadata.name,
        "metadata.namespace": metadata.namespace,
        "metadata.uid": metadata.uid,
        "spec.nodeName": getattr(spec, "node_name", None),
        "spec.serviceAccountName": getattr(spec, "service_account_name", None),
        "status.hostIP": getattr(status, "host_ip", None) if status else None,
        "status.podIP": getattr(status, "pod_ip", None) if status else None,
    }
    if field_path in values:
        return values[field_path] or ""
    return f"[fieldRef:{field_path}]"


def extract_env_vars(container_spec: Any, pod: Any) -> List[EnvVar]:
    """
    Environment variables of a container.

    ``valueFrom`` references are resolved to a display value. Variables whose
    name contains PASSWORD, SECRET, KEY, TOKEN or PASS (any case) are masked,
    and so is every secret reference.
    """
    env_list = []
    for ev in getattr(container_spec, "env", None) or []:
        var = EnvVar(name=ev.name, value=ev.value or "", masked=is_sensitive_env_var(ev.name))
        src = ev.value_from
        if not ev.value and src is not None:
            if src.field_ref:
                var.value = _resolve_field_ref(src.field_ref.field_path, pod)
            elif src.secret_key_ref:
                ref = src.secret_key_ref
                var.value = f"[secret:{ref.name}/{ref.key}]"
                var.masked = True
            elif src.config_map_key_ref:
                ref = src.config_map_key_ref
                var.value = f"[configMap:{ref.name}/{ref.key}]"
            elif src.resource_field_ref:
                var.value = f"[resource:{src.resource_field_ref.resource}]"
            else:
                var.value = "[valueFrom:unknown]"
        if var.masked:
            var.value = MASKED_VALUE
        env_list.append(var)
    return env_list


def build_container(
    container_spec: Any,
    pod: Any,
    container_type: ContainerType,
    usage: Optional[ContainerUsage],
    extended: bool = False,
) -> Container:
    """Build the Container model for one spec entry of ``pod``."""
    container = Container(
        name=container_spec.name,
        type=container_type,
        image=container_spec.image or "",
        command=list(container_spec.command or []),
        args=list(container_spec.args or []),
        ports=extract_ports(container_spec),
    )

    cstat = find_container_status(pod, container_spec.name, container_type)
    if cstat is not None:
        apply_container_state(container, cstat)
    else:
        container.status = ContainerStatus.UNKNOWN.value

    container.resources = build_resource_info(container_spec, usage)
    container.probes = extract_probe_info(container_spec, cstat)

    if extended:
        container.volumes = extract_volumes(container_spec, pod)
        container.environment = extract_env_vars(container_spec, pod)

    return container


def extract_conditions(pod: Any) -> List[PodCondition]:
    conditions = []
    for cond in (getattr(pod.status, "conditions", None) or []) if pod.status else []:
        conditions.append(PodCondition(
            type=cond.type, status=cond.status, reason=cond.reason or "", message=cond.message or ""
        ))
    return conditions


def extract_network(pod: Any) -> NetworkInfo:
    """Pod addressing; falls back to the single pod IP when ``podIPs`` is empty."""
    status = pod.status
    info = NetworkInfo(
        host_network=bool(getattr(pod.spec, "host_network", False)),
        pod_ip=(getattr(status, "pod_ip", None) or "") if status else "",
        host_ip=(getattr(status, "host_ip", None) or "") if status else "",
    )
    pod_ips = (getattr(status, "pod_ips", None) or getattr(status, "pod_i_ps", None)) if status else None
    if pod_ips:
        info.pod_ips = [p.ip for p in pod_ips]
    elif info.pod_ip:
        info.pod_ips = [info.pod_ip]
    return info
