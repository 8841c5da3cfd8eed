"""
Target resolution for Kubestatus.

This module maps what the user asked for (a bare name, an explicit
``type/name``, or a label selector) to Workload descriptors: kind, name,
namespace, pod selector and replica counts. Member pods are attached later by
the collector.

Resolution rules:
- ``type/name`` or an explicit resource type resolves that kind directly
- A bare name is tried as Pod, Deployment, StatefulSet, DaemonSet, then Job;
  the first match wins. Only "not found" moves on to the next kind.
- A matched pod is always a standalone single-pod workload
- A selector lists matching pods and groups them by owning controller
  (ReplicaSet -> Deployment, StatefulSet, DaemonSet, Job); pods without a
  controller become standalone workloads

Example:
    ```python
    resolver = Resolver(kube)
    workloads = await resolver.resolve(StatusOptions(resource_name="web", namespace="prod"))
    ```
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .kube import KubeContext, describe_error, is_not_found, list_pods, run_blocking
from .models import StatusOptions, Workload
from .exceptions import (
    ConfigurationError, NoPodsFoundError, ResolutionError, ResourceNotFoundError,
)
from .validation import parse_target, validate_label_selector

log = logging.getLogger("kubestatus")

AUTO_DETECT_ORDER = ("Pod", "Deployment", "StatefulSet", "DaemonSet", "Job")
CONTROLLER_KINDS = ("StatefulSet", "DaemonSet", "Job")


def selector_to_string(label_selector: Any) -> str:
    """
    Render a V1LabelSelector as a label selector string.

    ``matchLabels`` become ``key=value``; ``matchExpressions`` become
    ``key in (...)``, ``key notin (...)``, ``key`` or ``!key``.
    """
    if label_selector is None:
        return ""
    parts = [f"{k}={v}" for k, v in sorted((label_selector.match_labels or {}).items())]
    for expr in label_selector.match_expressions or []:
        values = ",".join(expr.values or [])
        if expr.operator == "In":
            parts.append(f"{expr.key} in ({values})")
        elif expr.operator == "NotIn":
            parts.append(f"{expr.key} notin ({values})")
        elif expr.operator == "Exists":
            parts.append(expr.key)
        elif expr.operator == "DoesNotExist":
            parts.append(f"!{expr.key}")
    return ",".join(parts)


def _replicas(ready: Optional[int], desired: Optional[int]) -> Tuple[str, int, int]:
    ready = ready or 0
    desired = desired or 0
    return f"{ready}/{desired}", ready, desired


def pod_workload(pod: Any) -> Workload:
    """Standalone single-pod workload for ``pod``."""
    return Workload(
        kind="Pod",
        name=pod.metadata.name,
        namespace=pod.metadata.namespace,
        replicas="1/1",
        ready_replicas=1,
        desired_replicas=1,
        labels=dict(pod.metadata.labels or {}),
    )


def controller_workload(kind: str, obj: Any) -> Workload:
    """Workload descriptor for a Deployment, StatefulSet, DaemonSet or Job object."""
    status = obj.status
    if kind == "DaemonSet":
        display, ready, desired = _replicas(
            getattr(status, "number_ready", None), getattr(status, "desired_number_scheduled", None)
        )
    elif kind == "Job":
        completions = obj.spec.completions if obj.spec.completions is not None else 1
        display, ready, desired = _replicas(getattr(status, "succeeded", None), completions)
    else:
        display, ready, desired = _replicas(
            getattr(status, "ready_replicas", None), getattr(status, "replicas", None)
        )
    return Workload(
        kind=kind,
        name=obj.metadata.name,
        namespace=obj.metadata.namespace,
        replicas=display,
        ready_replicas=ready,
        desired_replicas=desired,
        labels=dict(obj.metadata.labels or {}),
        selector=selector_to_string(obj.spec.selector),
    )


class Resolver:
    """
    Resolves targets to Workload descriptors.

    Every client call runs in the default executor; "not found" responses are
    distinguished from other API and transport failures, which are wrapped in
    ResolutionError with the attempted kind and name.
    """

    def __init__(self, kube: KubeContext):
        self.kube = kube

    async def resolve(self, options: StatusOptions) -> List[Workload]:
        """
        Resolve ``options`` to one or more workloads.

        Raises:
            ConfigurationError: If neither a selector nor a name is given
            InvalidSelectorError / NoPodsFoundError: For selector failures
            ResourceNotFoundError: If a name matches no supported kind
            ResolutionError: If an API call fails
        """
        namespace = options.namespace or self.kube.namespace
        if options.selector:
            return await self._resolve_by_selector(options.selector, namespace, options.all_namespaces)

        if not options.resource_name:
            raise ConfigurationError("resource name is required")

        kind, name = parse_target(options.resource_name, options.resource_type or None)
        if kind is None:
            return [await self._auto_detect(name, namespace)]
        return [await self._resolve_kind(kind, name, namespace)]

    def _reader(self, kind: str):
        readers = {
            "Pod": self.kube.core.read_namespaced_pod,
            "Deployment": self.kube.apps.read_namespaced_deployment,
            "StatefulSet": self.kube.apps.read_namespaced_stateful_set,
            "DaemonSet": self.kube.apps.read_namespaced_daemon_set,
            "Job": self.kube.batch.read_namespaced_job,
        }
        return readers[kind]

    async def _get(self, kind: str, name: str, namespace: str) -> Any:
        return await run_blocking(self._reader(kind), name, namespace)

    async def _resolve_kind(self, kind: str, name: str, namespace: str) -> Workload:
        try:
            obj = await self._get(kind, name, namespace)
        except Exception as e:
            if is_not_found(e):
                raise ResourceNotFoundError(
                    f"{kind.lower()} '{name}' not found in namespace '{namespace}'", kind=kind, name=name
                ) from e
            raise ResolutionError(
                f"failed to get {kind.lower()} '{name}': {describe_error(e)}", kind=kind, name=name
            ) from e
        if kind == "Pod":
            return pod_workload(obj)
        return controller_workload(kind, obj)

    async def _auto_detect(self, name: str, namespace: str) -> Workload:
        for kind in AUTO_DETECT_ORDER:
            try:
                obj = await self._get(kind, name, namespace)
            except Exception as e:
                if is_not_found(e):
                    log.debug(f"[resolver] {name} is not a {kind}")
                    continue
                raise ResolutionError(
                    f"failed to get {kind.lower()} '{name}': {describe_error(e)}", kind=kind, name=name
                ) from e
            log.debug(f"[resolver] {name} resolved as {kind}")
            if kind == "Pod":
                return pod_workload(obj)
            return controller_workload(kind, obj)
        raise ResourceNotFoundError(
            f"resource '{name}' not found as Pod, Deployment, StatefulSet, DaemonSet, or Job", name=name
        )

    async def _owner_of(self, pod: Any, rs_cache: Dict[Tuple[str, str], Optional[str]]) -> Optional[Tuple[str, str]]:
        """(kind, name) of the controller owning ``pod``, or None for a standalone pod."""
        namespace = pod.metadata.namespace
        for owner in pod.metadata.owner_references or []:
            if owner.kind == "ReplicaSet":
                key = (namespace, owner.name)
                if key not in rs_cache:
                    rs_cache[key] = await self._deployment_of_replica_set(owner.name, namespace)
                if rs_cache[key]:
                    return "Deployment", rs_cache[key]
            elif owner.kind in CONTROLLER_KINDS:
                return owner.kind, owner.name
        return None

    async def _deployment_of_replica_set(self, name: str, namespace: str) -> Optional[str]:
        try:
            rs = await run_blocking(self.kube.apps.read_namespaced_replica_set, name, namespace)
        except Exception as e:
            if is_not_found(e):
                return None
            raise ResolutionError(
                f"failed to get replicaset '{name}': {describe_error(e)}", kind="ReplicaSet", name=name
            ) from e
        for owner in rs.metadata.owner_references or []:
            if owner.kind == "Deployment":
                return owner.name
        return None

    async def _resolve_by_selector(self, selector: str, namespace: str, all_namespaces: bool) -> List[Workload]:
        selector = validate_label_selector(selector)
        try:
            pods = await list_pods(self.kube.core, None if all_namespaces else namespace, selector)
        except Exception as e:
            raise ResolutionError(f"failed to list pods: {describe_error(e)}", kind="Pod", name=selector) from e

        if not pods:
            raise NoPodsFoundError(f"no pods found matching selector {selector}", kind="Pod", name=selector)

        rs_cache: Dict[Tuple[str, str], Optional[str]] = {}
        workloads: Dict[str, Workload] = {}
        for pod in pods:
            owner = await self._owner_of(pod, rs_cache)
            if owner is None:
                workload = pod_workload(pod)
            else:
                kind, name = owner
                workload = Workload(kind=kind, name=name, namespace=pod.metadata.namespace)
            workloads.setdefault(workload.key, workload)

        resolved = []
        for workload in workloads.values():
            if workload.kind != "Pod":
                workload = await self._complete_controller(workload, selector)
            resolved.append(workload)
        return resolved

    async def _complete_controller(self, workload: Workload, fallback_selector: str) -> Workload:
        """Fetch the controller for its real selector and replicas; fall back to the user selector."""
        try:
            obj = await self._get(workload.kind, workload.name, workload.namespace)
        except Exception as e:
            log.warning(
                f"[resolver] Failed to get {workload.kind} {workload.namespace}/{workload.name}: "
                f"{describe_error(e)}; using selector {fallback_selector}"
            )
            workload.selector = fallback_selector
            return workload
        return controller_workload(workload.kind, obj)
