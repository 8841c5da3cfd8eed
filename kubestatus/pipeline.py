"""
Status pipeline: resolve, collect, analyze, filter.

StatusPipeline ties the resolver, collector and analyzer together for one
single-shot invocation. Health is always computed on the full container set;
the problematic filter, the container display filter and sorting are applied
afterwards.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional

from .analyzer import analyze_pod_health, analyze_workload_health, filter_problematic_workloads, sort_pods
from .collector import Collector
from .constants import DEFAULT_MAX_WORKERS
from .kube import KubeContext
from .models import StatusOptions, Workload
from .resolver import Resolver

log = logging.getLogger("kubestatus")


class StatusPipeline:
    """
    Runs Resolver -> Collector -> Analyzer for a set of options.

    Example:
        ```python
        pipeline = StatusPipeline(kube)
        workloads = await pipeline.run(StatusOptions(resource_name="web", problematic=True))
        ```
    """

    def __init__(self, kube: KubeContext, max_workers: int = DEFAULT_MAX_WORKERS,
                 resolver: Optional[Resolver] = None, collector: Optional[Collector] = None):
        self.resolver = resolver or Resolver(kube)
        self.collector = collector or Collector(kube, max_workers=max_workers)

    async def run(self, options: StatusOptions, now: Optional[datetime] = None) -> List[Workload]:
        workloads = await self.resolver.resolve(options)
        now = now or datetime.now(timezone.utc)

        for workload in workloads:
            workload_options = options.for_workload(workload)
            if options.show_logs and not workload_options.single_pod_view:
                log.warning(
                    f"[logs] Logs are only collected for individual pods, ignoring for "
                    f"{workload.kind} '{workload.name}'"
                )
            workload.pods = await self.collector.collect_pods(workload, workload_options.collect_options())
            for pod in workload.pods:
                pod.health = analyze_pod_health(pod, now)
            workload.health = analyze_workload_health(workload, now)
            log.debug(
                f"[pipeline] {workload.key}: {len(workload.pods)} pods, "
                f"{workload.health.level.value} ({workload.health.score})"
            )

        if options.problematic:
            workloads = filter_problematic_workloads(workloads)

        return [self._present(w, options) for w in workloads]

    @staticmethod
    def _present(workload: Workload, options: StatusOptions) -> Workload:
        pods = [p.with_container_filter(options.container_filter) for p in workload.pods]
        if options.sort_by:
            pods = sort_pods(pods, options.sort_by)
        return replace(workload, pods=pods)
