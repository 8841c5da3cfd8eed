"""
Health analysis for Kubestatus.

Pure functions over populated Container, Pod and Workload models. Nothing in
this module mutates its input or performs I/O; the result depends only on the
model and on ``now`` (defaults to the current UTC time), so the functions are
safe to call concurrently.

Container rules, applied in order (score starts at 100, level Healthy):
1. Status floor (CrashLoopBackOff, Error, image pull failures and unexpected
   termination are Critical/0; Waiting is Degraded/50; unknown states are
   Degraded/30)
2. Current termination with a non-zero exit code: Degraded, -20
3. Restart within the last 5 minutes: -25
4. Failing liveness probe: Critical/0
5. Failing readiness probe: -15
6. Memory above 85% of limit: -20
7. CPU above 90% of limit: -15
8. OOMKilled termination: Critical/0
Rules 3 and 5-7 only change the level while it is still Healthy.

The problematic predicate is separate from the score: any restart at all
makes a container problematic, while the scorer only counts recent ones.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .constants import (
    CPU_DEGRADED_PERCENT, MEM_DEGRADED_PERCENT, MEM_PROBLEMATIC_PERCENT, PENALTY_HIGH_CPU, PENALTY_HIGH_MEMORY,
    PENALTY_NONZERO_EXIT, PENALTY_READINESS, PENALTY_RECENT_RESTART, POD_PENALTY_CRITICAL, POD_PENALTY_DEGRADED,
    RECENT_RESTART_WINDOW_SECONDS, SCORE_MAX, SCORE_UNKNOWN_STATE, SCORE_WAITING, SORT_KEYS,
)
from .models import ContainerStatus, ContainerType, Container, HealthLevel, HealthStatus, Pod, PodStatus, Workload

CRITICAL_STATUS_REASONS = {
    "CrashLoopBackOff": "container in CrashLoopBackOff",
    "Error": "container in error state",
    "ImagePullBackOff": "cannot pull container image",
    "ErrImagePull": "cannot pull container image",
}
PROBLEMATIC_POD_STATUSES = {
    PodStatus.TERMINATING.value, PodStatus.FAILED.value, PodStatus.UNKNOWN.value, PodStatus.PENDING.value,
}


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def has_recent_restart(container: Container, now: Optional[datetime] = None) -> bool:
    """True when the container has restarted and its current run started within the last 5 minutes."""
    if container.restart_count <= 0 or container.started_at is None:
        return False
    started = container.started_at
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    return _now(now) - started < timedelta(seconds=RECENT_RESTART_WINDOW_SECONDS)


def _is_unexpected_termination(container: Container) -> bool:
    return container.status == ContainerStatus.TERMINATED.value and container.type != ContainerType.INIT


def analyze_container_health(container: Container, now: Optional[datetime] = None) -> HealthStatus:
    """Score a single container; see the module docstring for the rule order."""
    score = SCORE_MAX
    level = HealthLevel.HEALTHY
    reason = ""
    status = container.status

    if status in CRITICAL_STATUS_REASONS:
        level, reason, score = HealthLevel.CRITICAL, CRITICAL_STATUS_REASONS[status], 0
    elif status == ContainerStatus.TERMINATED.value:
        if _is_unexpected_termination(container):
            level, reason, score = HealthLevel.CRITICAL, "container terminated unexpectedly", 0
    elif status == ContainerStatus.WAITING.value:
        level, reason, score = HealthLevel.DEGRADED, "container waiting to start", SCORE_WAITING
    elif status in (ContainerStatus.RUNNING.value, ContainerStatus.COMPLETED.value):
        pass
    else:
        level, reason, score = HealthLevel.DEGRADED, "unknown container state", SCORE_UNKNOWN_STATE

    # Exit codes only count for the current termination, not past restarts.
    if status == ContainerStatus.TERMINATED.value and container.exit_code not in (None, 0):
        if level != HealthLevel.CRITICAL:
            level, reason = HealthLevel.DEGRADED, "terminated with non-zero exit code"
            score -= PENALTY_NONZERO_EXIT

    if has_recent_restart(container, now):
        if level == HealthLevel.HEALTHY:
            level, reason = HealthLevel.DEGRADED, "recent restarts detected"
        score -= PENALTY_RECENT_RESTART

    probes = container.probes
    if probes.liveness.configured and not probes.liveness.passing:
        level, reason, score = HealthLevel.CRITICAL, "liveness probe failing", 0

    if probes.readiness.configured and not probes.readiness.passing:
        if level == HealthLevel.HEALTHY:
            level, reason = HealthLevel.DEGRADED, "readiness probe failing"
        score -= PENALTY_READINESS

    if container.resources.mem_percentage > MEM_DEGRADED_PERCENT:
        if level == HealthLevel.HEALTHY:
            level, reason = HealthLevel.DEGRADED, "high memory usage"
        score -= PENALTY_HIGH_MEMORY

    if container.resources.cpu_percentage > CPU_DEGRADED_PERCENT:
        if level == HealthLevel.HEALTHY:
            level, reason = HealthLevel.DEGRADED, "high CPU usage"
        score -= PENALTY_HIGH_CPU

    if "OOMKilled" in (container.termination_reason or ""):
        level, reason, score = HealthLevel.CRITICAL, "container killed due to out of memory", 0

    return HealthStatus(level=level, reason=reason, score=max(score, 0))


def analyze_pod_health(pod: Pod, now: Optional[datetime] = None) -> HealthStatus:
    """
    Aggregate container health into pod health.

    Each Critical container costs 30 points and each Degraded one 15. The
    reason is that of the first Critical container, else the first Degraded
    one, in init-then-standard order.
    """
    score = SCORE_MAX
    first_critical = None
    first_degraded = None

    for container in pod.all_containers():
        health = analyze_container_health(container, now)
        if health.level == HealthLevel.CRITICAL:
            score -= POD_PENALTY_CRITICAL
            if first_critical is None:
                first_critical = health.reason or "containers in critical state"
        elif health.level == HealthLevel.DEGRADED:
            score -= POD_PENALTY_DEGRADED
            if first_degraded is None:
                first_degraded = health.reason or "containers have issues"

    if first_critical is not None:
        return HealthStatus(HealthLevel.CRITICAL, first_critical, max(score, 0))
    if first_degraded is not None:
        return HealthStatus(HealthLevel.DEGRADED, first_degraded, max(score, 0))
    return HealthStatus(HealthLevel.HEALTHY, "all containers running normally", max(score, 0))


def _pods_phrase(count: int, singular: str, plural: str) -> str:
    if count == 1:
        return f"1 pod {singular}"
    return f"{count} pods {plural}"


def analyze_workload_health(workload: Workload, now: Optional[datetime] = None) -> HealthStatus:
    """Average pod scores (integer division) and take the worst pod level."""
    if not workload.pods:
        return HealthStatus(HealthLevel.CRITICAL, "no pods found", 0)

    total = 0
    critical = 0
    degraded = 0
    for pod in workload.pods:
        health = analyze_pod_health(pod, now)
        total += health.score
        if health.level == HealthLevel.CRITICAL:
            critical += 1
        elif health.level == HealthLevel.DEGRADED:
            degraded += 1

    average = total // len(workload.pods)
    if critical:
        return HealthStatus(HealthLevel.CRITICAL, _pods_phrase(critical, "has critical issues", "have critical issues"), average)
    if degraded:
        return HealthStatus(HealthLevel.DEGRADED, _pods_phrase(degraded, "has issues", "have issues"), average)
    return HealthStatus(HealthLevel.HEALTHY, "all pods running normally", average)


def is_container_problematic(container: Container) -> bool:
    """
    Whether a container needs attention, independent of its health score.

    Any restart counts, however old.
    """
    if container.status == ContainerStatus.TERMINATED.value and container.exit_code not in (None, 0):
        return True
    if container.restart_count > 0:
        return True
    if container.status in ("CrashLoopBackOff", "Error") or _is_unexpected_termination(container):
        return True
    probes = container.probes
    if probes.liveness.configured and not probes.liveness.passing:
        return True
    if probes.readiness.configured and not probes.readiness.passing:
        return True
    if container.resources.mem_percentage > MEM_PROBLEMATIC_PERCENT:
        return True
    return "OOMKilled" in (container.termination_reason or "")


def is_pod_problematic(pod: Pod) -> bool:
    if pod.status in PROBLEMATIC_POD_STATUSES:
        return True
    return any(is_container_problematic(c) for c in pod.all_containers())


def filter_problematic_workloads(workloads: List[Workload]) -> List[Workload]:
    """Keep only problematic pods; drop workloads left with none. Inputs are not modified."""
    filtered = []
    for workload in workloads:
        pods = [p for p in workload.pods if is_pod_problematic(p)]
        if pods:
            filtered.append(replace(workload, pods=pods))
    return filtered


def _max_percentage(pod: Pod, attr: str) -> float:
    return max((getattr(c.resources, attr) for c in pod.all_containers()), default=0.0)


def sort_pods(pods: List[Pod], sort_by: str) -> List[Pod]:
    """
    Return pods ordered by ``sort_by``.

    name sorts ascending; restarts, cpu and memory sort highest first; age
    sorts oldest first. Ties keep name order.
    """
    if sort_by not in SORT_KEYS:
        raise ValueError(f"unknown sort key: {sort_by}")
    by_name = sorted(pods, key=lambda p: p.name)
    if sort_by == "name":
        return by_name
    if sort_by == "restarts":
        return sorted(by_name, key=lambda p: p.total_restarts(), reverse=True)
    if sort_by == "cpu":
        return sorted(by_name, key=lambda p: _max_percentage(p, "cpu_percentage"), reverse=True)
    if sort_by == "memory":
        return sorted(by_name, key=lambda p: _max_percentage(p, "mem_percentage"), reverse=True)
    return sorted(by_name, key=lambda p: p.age_seconds, reverse=True)
