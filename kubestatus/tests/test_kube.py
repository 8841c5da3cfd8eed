"""Tests for Kubernetes client helpers."""

from __future__ import annotations

import pytest
from kubernetes import config
from kubernetes.client import ApiException

from kubestatus.exceptions import KubernetesConnectionError, MetricsUnavailableError
from kubestatus.kube import (
    current_namespace, describe_error, is_not_found, list_pod_metrics, load_kube, tail_logs,
)
from kubestatus.tests.fakes import FakeCoreApi, unreachable

CONTEXTS = [
    {"name": "dev", "context": {"cluster": "dev", "namespace": "team-a"}},
    {"name": "prod", "context": {"cluster": "prod"}},
]


class TestKubeHelpers:
    """Tests for namespace lookup, config loading and small wrappers."""

    def test_active_context_namespace(self, monkeypatch) -> None:
        monkeypatch.setattr(config, "list_kube_config_contexts", lambda config_file=None: (CONTEXTS, CONTEXTS[0]))

        assert current_namespace(None, None) == "team-a"

    def test_named_context_without_namespace(self, monkeypatch) -> None:
        monkeypatch.setattr(config, "list_kube_config_contexts", lambda config_file=None: (CONTEXTS, CONTEXTS[0]))

        assert current_namespace(None, "prod") == "default"

    def test_unreadable_kubeconfig(self, monkeypatch) -> None:
        def _raise(config_file=None):
            raise config.ConfigException("no kubeconfig")

        monkeypatch.setattr(config, "list_kube_config_contexts", _raise)

        assert current_namespace("/nonexistent", None) == "default"

    @pytest.mark.asyncio
    async def test_load_failure(self, monkeypatch) -> None:
        def _raise(*args, **kwargs):
            raise config.ConfigException("Service host/port is not set.")

        monkeypatch.setattr(config, "load_kube_config", _raise)
        monkeypatch.setattr(config, "load_incluster_config", _raise)

        with pytest.raises(KubernetesConnectionError, match="Failed to load Kubernetes configuration"):
            await load_kube(None, None)

    def test_is_not_found(self) -> None:
        assert is_not_found(ApiException(status=404))
        assert not is_not_found(ApiException(status=403))
        assert not is_not_found(ValueError("404"))

    def test_describe_error(self) -> None:
        assert describe_error(ApiException(status=403, reason="Forbidden")) == "Forbidden"
        assert describe_error(unreachable("read_namespaced_pod")).startswith("MaxRetryError: ")

    def test_tail_logs_decodes_and_drops_blank_lines(self) -> None:
        core = FakeCoreApi()
        core.logs[("web-1", "app")] = b"one\n\r\ntwo\n"

        assert tail_logs(core, "default", "web-1", "app") == ["one", "two"]

    @pytest.mark.asyncio
    async def test_metrics_without_client(self) -> None:
        with pytest.raises(MetricsUnavailableError):
            await list_pod_metrics(None, "default")
