"""
Pod collection for Kubestatus.

This module lists the member pods of a workload and builds a fully populated
Pod model for each one. Metrics and events are fetched once per collection
for the whole namespace and frozen into a ClusterSnapshot; per-pod detail
extraction then runs concurrently, one task per pod, reading only that
snapshot.

Guarantees:
- Results are returned in the pod listing order, whatever order tasks finish in
- Any unexpected failure in a per-pod task aborts the whole collection with a
  CollectionError naming the pod; remaining tasks are cancelled
- Metrics, events and log failures are soft: they are logged as warnings and
  degrade to empty or zero values

Example:
    ```python
    collector = Collector(kube, max_workers=8)
    pods = await collector.collect_pods(workload, CollectOptions(collect_events=True))
    ```
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_MAX_WORKERS, EVENTS_WINDOW_DEFAULT_SECONDS, EVENTS_WINDOW_REQUESTED_SECONDS
from .exceptions import CollectionError, MetricsUnavailableError
from .kube import (
    KubeContext, describe_error, list_events, list_pod_metrics, list_pods, log_exception, run_blocking, tail_logs,
)
from .metrics_processing import index_pod_metrics
from .models import (
    ClusterSnapshot, CollectOptions, ContainerStatus, ContainerType, EventInfo, Pod, PodMetrics, Workload,
)
from .pod_processing import build_container, extract_conditions, extract_network, pod_status

log = logging.getLogger("kubestatus")


def _aware(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def event_timestamp(event: Any) -> Optional[datetime]:
    """
    Effective timestamp of a core/v1 event.

    The newest available signal wins: ``series.lastObservedTime``, then
    ``eventTime``, then ``lastTimestamp``, then ``firstTimestamp``.
    """
    series = getattr(event, "series", None)
    candidates = (
        getattr(series, "last_observed_time", None) if series is not None else None,
        getattr(event, "event_time", None),
        getattr(event, "last_timestamp", None),
        getattr(event, "first_timestamp", None),
    )
    for ts in candidates:
        if isinstance(ts, datetime):
            return _aware(ts)
    return None


def index_events(
    events: List[Any],
    pod_names: List[str],
    window_seconds: int,
    now: Optional[datetime] = None,
) -> Dict[str, List[EventInfo]]:
    """Group events for ``pod_names`` newer than the window by pod, oldest first."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=window_seconds)
    wanted = set(pod_names)
    result: Dict[str, List[EventInfo]] = {}
    for event in events:
        involved = getattr(event, "involved_object", None)
        pod_name = getattr(involved, "name", None)
        if pod_name not in wanted:
            continue
        ts = event_timestamp(event)
        if ts is None or ts <= cutoff:
            continue
        result.setdefault(pod_name, []).append(EventInfo(
            time=ts,
            type=event.type or "",
            reason=event.reason or "",
            message=event.message or "",
            pod_name=pod_name,
            count=event.count or 1,
        ))
    for items in result.values():
        items.sort(key=lambda e: e.time)
    return result


class Collector:
    """
    Collects Pod models for a workload.

    Attributes:
        kube: Kubernetes API clients
        max_workers: Upper bound on concurrently running per-pod tasks
    """

    def __init__(self, kube: KubeContext, max_workers: int = DEFAULT_MAX_WORKERS):
        self.kube = kube
        self.max_workers = max_workers

    async def collect_pods(self, workload: Workload, options: CollectOptions) -> List[Pod]:
        """
        List the pods of ``workload`` and build a Pod model for each.

        Raises:
            CollectionError: If listing fails or any per-pod task fails
        """
        raw_pods = await self._list_workload_pods(workload)
        if not raw_pods:
            return []
        log.debug(f"[collector] Collecting {len(raw_pods)} pods for {workload.key}")

        snapshot = await self._prefetch(workload.namespace, raw_pods, options)
        now = datetime.now(timezone.utc)
        semaphore = asyncio.Semaphore(self.max_workers)

        async def _collect_one(raw_pod: Any) -> Pod:
            async with semaphore:
                try:
                    return await run_blocking(self._build_pod, raw_pod, snapshot, options, now)
                except Exception as e:
                    name = getattr(getattr(raw_pod, "metadata", None), "name", "<unknown>")
                    raise CollectionError(f"failed to collect pod info for pod {name}: {e}", pod=name) from e

        tasks = [asyncio.ensure_future(_collect_one(p)) for p in raw_pods]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def _list_workload_pods(self, workload: Workload) -> List[Any]:
        try:
            if workload.kind == "Pod":
                pod = await run_blocking(self.kube.core.read_namespaced_pod, workload.name, workload.namespace)
                return [pod]
            return await list_pods(self.kube.core, workload.namespace, workload.selector)
        except Exception as e:
            pod = workload.name if workload.kind == "Pod" else None
            raise CollectionError(
                f"failed to list pods for {workload.kind.lower()} {workload.namespace}/{workload.name}: "
                f"{describe_error(e)}",
                pod=pod,
            ) from e

    async def _prefetch(self, namespace: str, raw_pods: List[Any], options: CollectOptions) -> ClusterSnapshot:
        """Fetch metrics and events for the namespace once and freeze them."""
        metrics: Optional[Dict[str, PodMetrics]] = None
        if options.collect_metrics:
            metrics = await self._bulk_metrics(namespace)

        pod_names = [p.metadata.name for p in raw_pods]
        window = EVENTS_WINDOW_REQUESTED_SECONDS if options.collect_events else EVENTS_WINDOW_DEFAULT_SECONDS
        events = await self._bulk_events(namespace, pod_names, window)
        return ClusterSnapshot.build(metrics, events)

    async def _bulk_metrics(self, namespace: str) -> Optional[Dict[str, PodMetrics]]:
        try:
            return index_pod_metrics(await list_pod_metrics(self.kube.metrics, namespace))
        except MetricsUnavailableError as e:
            log_exception(f"[metrics] Failed to collect bulk metrics in {namespace}", e)
            return None

    async def _bulk_events(self, namespace: str, pod_names: List[str], window: int) -> Dict[str, List[EventInfo]]:
        try:
            events = await list_events(self.kube.core, namespace)
        except Exception as e:
            log_exception(f"[events] Failed to collect bulk events in {namespace}", e)
            return {}
        return index_events(events, pod_names, window)

    def _build_pod(self, raw_pod: Any, snapshot: ClusterSnapshot, options: CollectOptions, now: datetime) -> Pod:
        """Build one Pod model; runs in an executor thread and reads only ``snapshot``."""
        meta = raw_pod.metadata
        spec = raw_pod.spec
        created = _aware(meta.creation_timestamp)
        metrics = snapshot.metrics_for(meta.name)

        pod = Pod(
            name=meta.name,
            namespace=meta.namespace,
            node_name=spec.node_name or "",
            service_account=spec.service_account_name or "",
            created_at=created,
            age_seconds=int((now - created).total_seconds()) if created else 0,
            status=pod_status(raw_pod),
            conditions=extract_conditions(raw_pod),
            network=extract_network(raw_pod),
            metrics=metrics,
            events=snapshot.events_for(meta.name),
            labels=dict(meta.labels or {}),
            annotations=dict(meta.annotations or {}),
        )

        usage = metrics.containers if metrics else {}
        for spec_c in spec.init_containers or []:
            pod.init_containers.append(build_container(
                spec_c, raw_pod, ContainerType.INIT, usage.get(spec_c.name), options.extended_detail
            ))
        for spec_c in spec.containers or []:
            pod.containers.append(build_container(
                spec_c, raw_pod, ContainerType.STANDARD, usage.get(spec_c.name), options.extended_detail
            ))
        if options.extended_detail:
            for spec_c in getattr(spec, "ephemeral_containers", None) or []:
                pod.ephemeral_containers.append(build_container(
                    spec_c, raw_pod, ContainerType.EPHEMERAL, None, options.extended_detail
                ))

        if options.collect_logs and options.single_pod_view:
            for container in pod.all_containers():
                if container.status == ContainerStatus.RUNNING.value:
                    container.logs = self._container_logs(pod, container.name)

        return pod

    def _container_logs(self, pod: Pod, container_name: str) -> List[str]:
        try:
            return tail_logs(self.kube.core, pod.namespace, pod.name, container_name)
        except Exception as e:
            log_exception(f"[logs] Failed to collect logs for {pod.name}/{container_name}", e)
            return []
