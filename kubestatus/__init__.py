"""
Kubestatus - Container status and health for Kubernetes workloads.

Kubestatus resolves a pod, a controller (Deployment, StatefulSet, DaemonSet,
Job) or a label selector into workloads, collects the live state of every
member pod and container, and scores each container, pod and workload as
Healthy, Degraded or Critical.

Key Features:
- Auto-detection of the resource kind behind a bare name
- Selector-based grouping of pods by their owning controller
- Bulk metrics and events pre-fetch with concurrent per-pod collection
- Deterministic health scoring plus a "problematic" filter
- Environment, volume, probe and log tail inspection for single pods

Example:
    Basic usage:
    ```bash
    kubestatus status web-backend
    ```

    Explicit type and namespace:
    ```bash
    kubestatus status deployment/web-backend --namespace prod
    ```

    Only problematic pods across a selector:
    ```bash
    kubestatus status -l app=web --problematic
    ```
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
