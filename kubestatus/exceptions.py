"""
Custom exceptions for Kubestatus.

This module defines the exception classes used throughout Kubestatus to give
resolution and collection failures specific types and descriptive messages.

Exception Hierarchy:
- KubestatusError: Base exception for all Kubestatus-specific errors
  - KubernetesConnectionError: Raised when unable to load cluster configuration
  - ConfigurationError: Raised when an option value is invalid
  - ResolutionError: Raised when a target cannot be resolved to workloads
    - ResourceNotFoundError: No kind matched the requested name
    - InvalidSelectorError: The label selector has invalid syntax
    - NoPodsFoundError: The label selector matched zero pods
  - CollectionError: Raised when pod collection fails unrecoverably
  - MetricsUnavailableError: Raised when the metrics backend is not available

Example:
    ```python
    try:
        workloads = await resolver.resolve(options)
    except ResourceNotFoundError as e:
        print(f"Nothing to show: {e}")
    ```
"""

from typing import Optional


class KubestatusError(Exception):
    """Base exception for Kubestatus errors."""
    pass


class KubernetesConnectionError(KubestatusError):
    """Raised when unable to connect to Kubernetes cluster."""
    pass


class ConfigurationError(KubestatusError):
    """Raised when there's a configuration issue."""
    pass


class ResolutionError(KubestatusError):
    """
    Raised when a target cannot be resolved to workloads.

    Attributes:
        kind: Resource kind that was being resolved, if known
        name: Resource name or selector that was being resolved, if known
    """

    def __init__(self, message: str, kind: Optional[str] = None, name: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.name = name


class ResourceNotFoundError(ResolutionError):
    """Raised when a name matches none of the supported kinds."""
    pass


class InvalidSelectorError(ResolutionError):
    """Raised when a label selector has invalid syntax."""
    pass


class NoPodsFoundError(ResolutionError):
    """Raised when a label selector matches zero pods."""
    pass


class CollectionError(KubestatusError):
    """
    Raised when pod collection fails unrecoverably.

    Attributes:
        pod: Name of the pod whose collection failed, if the failure was per-pod
    """

    def __init__(self, message: str, pod: Optional[str] = None):
        super().__init__(message)
        self.pod = pod


class MetricsUnavailableError(KubestatusError):
    """Raised when metrics server is not available."""
    pass
