"""
Kubernetes client and API interactions for Kubestatus.

This module provides the interface between Kubestatus and the Kubernetes API.
It handles configuration loading and wraps the blocking ``kubernetes`` client
calls used by the resolver and collector so they run in the default executor
without blocking the event loop.

Key Components:
- KubeContext: Container for Kubernetes API clients
- load_kube: Initialize Kubernetes clients with config loading
- current_namespace: Namespace of the active kubeconfig context
- run_blocking: Run a blocking client call in the default executor
- log_exception / describe_error: Shared failure logging and wrapping helpers
- list_pods / list_events / list_pod_metrics / tail_logs: Bulk and log reads

The module supports both external kubeconfig files and in-cluster
configuration, with automatic fallback between the two.

Example:
    ```python
    kube = await load_kube(kubeconfig=None, context=None)
    pods = await list_pods(kube.core, "default", "app=web")
    ```
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client import ApiException

from .constants import (
    DEFAULT_NAMESPACE, LOG_TAIL_LINES, METRICS_API_GROUP, METRICS_API_PLURAL, METRICS_API_VERSION,
)
from .exceptions import KubernetesConnectionError, MetricsUnavailableError

log = logging.getLogger("kubestatus")


def log_exception(msg: str, exc: Exception, level: int = logging.WARNING):
    """Log an exception with proper formatting."""
    log.log(level, f"{msg}: {exc.__class__.__name__}: {exc}")


class KubeContext:
    """
    Container for Kubernetes API clients.

    Attributes:
        core: CoreV1Api client for pods, events and logs
        apps: AppsV1Api client for deployments, statefulsets, daemonsets, replicasets
        batch: BatchV1Api client for jobs
        metrics: CustomObjectsApi client for metrics.k8s.io (may be None)
        namespace: Namespace of the active context, used when none is given

    Example:
        ```python
        kube = await load_kube(kubeconfig, context)
        deployment = kube.apps.read_namespaced_deployment("web", "prod")
        ```
    """

    def __init__(
        self,
        core: client.CoreV1Api,
        apps: client.AppsV1Api,
        batch: client.BatchV1Api,
        metrics: Optional[client.CustomObjectsApi],
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.core = core
        self.apps = apps
        self.batch = batch
        self.metrics = metrics
        self.namespace = namespace


def current_namespace(kubeconfig: Optional[str], context: Optional[str]) -> str:
    """Namespace configured on the active (or named) kubeconfig context."""
    try:
        contexts, active = config.list_kube_config_contexts(config_file=kubeconfig)
    except Exception:
        return DEFAULT_NAMESPACE
    selected = active
    if context:
        selected = next((c for c in contexts if c.get("name") == context), active)
    if not selected:
        return DEFAULT_NAMESPACE
    return (selected.get("context") or {}).get("namespace") or DEFAULT_NAMESPACE


async def load_kube(kubeconfig: Optional[str], context: Optional[str]) -> KubeContext:
    """
    Load and initialize Kubernetes API clients.

    Uses the given kubeconfig/context when provided, otherwise the default
    kubeconfig with a fallback to in-cluster configuration.

    Raises:
        KubernetesConnectionError: If no configuration can be loaded
    """
    def _load():
        if kubeconfig or context:
            config.load_kube_config(config_file=kubeconfig, context=context)
            namespace = current_namespace(kubeconfig, context)
        else:
            try:
                config.load_kube_config()
                namespace = current_namespace(None, None)
            except Exception:
                config.load_incluster_config()
                namespace = DEFAULT_NAMESPACE
        return client.CoreV1Api(), client.AppsV1Api(), client.BatchV1Api(), client.CustomObjectsApi(), namespace

    loop = asyncio.get_running_loop()
    try:
        core, apps, batch, custom, namespace = await loop.run_in_executor(None, _load)
    except Exception as e:
        raise KubernetesConnectionError(f"Failed to load Kubernetes configuration: {e}") from e
    return KubeContext(core, apps, batch, custom, namespace)


async def run_blocking(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a blocking client call in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, ApiException) and exc.status == 404


def describe_error(exc: BaseException) -> str:
    """Short reason for a failed client call: the API reason, or the transport error."""
    if isinstance(exc, ApiException):
        return str(exc.reason)
    return f"{exc.__class__.__name__}: {exc}"


async def list_pods(core: client.CoreV1Api, namespace: Optional[str], label_selector: str) -> List[Any]:
    """List pods by label selector in ``namespace``, or in all namespaces when it is empty."""
    if namespace:
        result = await run_blocking(core.list_namespaced_pod, namespace, label_selector=label_selector)
    else:
        result = await run_blocking(core.list_pod_for_all_namespaces, label_selector=label_selector)
    return list(result.items or [])


async def list_events(core: client.CoreV1Api, namespace: str) -> List[Any]:
    result = await run_blocking(core.list_namespaced_event, namespace)
    return list(result.items or [])


async def list_pod_metrics(custom: Optional[client.CustomObjectsApi], namespace: str) -> Dict[str, Any]:
    """
    List metrics.k8s.io pod metrics for a namespace in one call.

    Raises:
        MetricsUnavailableError: If there is no metrics client or the backend fails
    """
    if custom is None:
        raise MetricsUnavailableError("metrics client not available")

    def _list():
        try:
            return custom.list_namespaced_custom_object(
                METRICS_API_GROUP, METRICS_API_VERSION, namespace, METRICS_API_PLURAL
            )
        except ApiException as e:
            raise MetricsUnavailableError(f"metrics API returned {e.status}: {e.reason}") from e
        except Exception as e:
            raise MetricsUnavailableError(str(e)) from e

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _list)


def tail_logs(core: client.CoreV1Api, namespace: str, pod: str, container: str,
              lines: int = LOG_TAIL_LINES) -> List[str]:
    """Most recent ``lines`` non-blank log lines of a container (blocking)."""
    raw = core.read_namespaced_pod_log(
        name=pod, namespace=namespace, container=container, tail_lines=lines, timestamps=False
    )
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", "replace")
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]
