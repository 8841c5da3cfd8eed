"""
Output adapters for Kubestatus.

Converts workloads to JSON-safe dictionaries and renders a plain-text summary
with one line per workload and pod.
"""

import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from .models import Workload


def _json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def workloads_to_dict(workloads: List[Workload]) -> Dict[str, Any]:
    return {"workloads": [_json_safe(asdict(w)) for w in workloads]}


def workloads_to_json(workloads: List[Workload]) -> str:
    return json.dumps(workloads_to_dict(workloads), indent=2)


def render_summary(workloads: List[Workload]) -> str:
    """One line per workload followed by one indented line per pod."""
    lines = []
    for w in workloads:
        lines.append(
            f"{w.kind}/{w.name} ({w.namespace}) replicas={w.replicas} "
            f"health={w.health.level.value} score={w.health.score} - {w.health.reason}"
        )
        for p in w.pods:
            ready = sum(1 for c in p.containers if c.ready)
            lines.append(
                f"  {p.name} {p.status} ready={ready}/{len(p.containers)} restarts={p.total_restarts()} "
                f"health={p.health.level.value} score={p.health.score} - {p.health.reason}"
            )
    return "\n".join(lines)
