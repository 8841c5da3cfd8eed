"""Tests for the resolve, collect and analyze pipeline."""

from __future__ import annotations

import logging

import pytest

from kubestatus.kube import KubeContext
from kubestatus.models import HealthLevel, StatusOptions, Workload
from kubestatus.pipeline import StatusPipeline
from kubestatus.tests.fakes import (
    NOW,
    container_spec,
    make_deployment,
    make_pod,
    running,
    waiting,
)


@pytest.fixture
def web(kube: KubeContext) -> KubeContext:
    """Deployment "web" with one healthy pod and one crash-looping pod."""
    kube.apps.add("Deployment", make_deployment("web", ready=1, replicas=2))
    kube.core.add_pod(make_pod(
        "web-b",
        labels={"app": "web"},
        containers=[container_spec("app"), container_spec("sidecar")],
        statuses=[waiting("app", reason="CrashLoopBackOff", restarts=7), running("sidecar")],
    ))
    kube.core.add_pod(make_pod(
        "web-a",
        labels={"app": "web"},
        containers=[container_spec("app"), container_spec("sidecar")],
    ))
    return kube


class TestStatusOptions:
    """Tests for option derivation per workload."""

    def test_single_pod_view_for_pods_only(self) -> None:
        options = StatusOptions(show_logs=True)

        pod_opts = options.for_workload(Workload(kind="Pod", name="p", namespace="default"))
        deploy_opts = options.for_workload(Workload(kind="Deployment", name="d", namespace="default"))

        assert pod_opts.collect_options().collect_logs is True
        assert pod_opts.collect_options().extended_detail is True
        assert deploy_opts.collect_options().collect_logs is False
        assert deploy_opts.collect_options().extended_detail is False
        assert options.single_pod_view is False

    def test_env_enables_extended_detail(self) -> None:
        collect = StatusOptions(show_env=True, show_events=True).collect_options()

        assert collect.extended_detail is True
        assert collect.collect_events is True
        assert collect.collect_metrics is True


class TestStatusPipeline:
    """Tests for StatusPipeline.run."""

    @pytest.mark.asyncio
    async def test_health_assigned(self, web: KubeContext) -> None:
        workloads = await StatusPipeline(web).run(StatusOptions(resource_name="deploy/web"), now=NOW)

        workload = workloads[0]
        assert workload.replicas == "1/2"
        assert [p.name for p in workload.pods] == ["web-a", "web-b"]
        assert workload.health.level == HealthLevel.CRITICAL
        assert workload.health.reason == "1 pod has critical issues"
        assert workload.health.score == (100 + 70) // 2
        assert workload.pods[1].health.reason == "container in CrashLoopBackOff"

    @pytest.mark.asyncio
    async def test_problematic_filter(self, web: KubeContext) -> None:
        options = StatusOptions(resource_name="deploy/web", problematic=True)

        workloads = await StatusPipeline(web).run(options, now=NOW)

        assert [p.name for p in workloads[0].pods] == ["web-b"]
        assert workloads[0].health.score == 85

    @pytest.mark.asyncio
    async def test_problematic_filter_drops_quiet_workloads(self, kube: KubeContext) -> None:
        kube.core.add_pod(make_pod("calm"))

        workloads = await StatusPipeline(kube).run(StatusOptions(resource_name="calm", problematic=True), now=NOW)

        assert workloads == []

    @pytest.mark.asyncio
    async def test_container_filter_after_analysis(self, web: KubeContext) -> None:
        options = StatusOptions(resource_name="deploy/web", container_filter="sidecar")

        workloads = await StatusPipeline(web).run(options, now=NOW)

        broken = workloads[0].pods[1]
        assert [c.name for c in broken.containers] == ["sidecar"]
        assert broken.health.level == HealthLevel.CRITICAL

    @pytest.mark.asyncio
    async def test_sort(self, web: KubeContext) -> None:
        options = StatusOptions(resource_name="deploy/web", sort_by="restarts")

        workloads = await StatusPipeline(web).run(options, now=NOW)

        assert [p.name for p in workloads[0].pods] == ["web-b", "web-a"]

    @pytest.mark.asyncio
    async def test_logs_ignored_for_controllers(self, web: KubeContext, caplog) -> None:
        options = StatusOptions(resource_name="deploy/web", show_logs=True)

        with caplog.at_level(logging.WARNING, logger="kubestatus"):
            await StatusPipeline(web).run(options, now=NOW)

        assert web.core.log_calls == []
        assert "Logs are only collected for individual pods" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_for_pod_target(self, web: KubeContext) -> None:
        web.core.logs[("web-a", "app")] = "ready\n"

        workloads = await StatusPipeline(web).run(StatusOptions(resource_name="pod/web-a", show_logs=True), now=NOW)

        assert workloads[0].kind == "Pod"
        assert workloads[0].pods[0].containers[0].logs == ["ready"]
        assert workloads[0].health.reason == "all pods running normally"

    @pytest.mark.asyncio
    async def test_selector_run(self, web: KubeContext) -> None:
        workloads = await StatusPipeline(web).run(StatusOptions(selector="app=web"), now=NOW)

        assert [(w.kind, w.name) for w in workloads] == [("Pod", "web-b"), ("Pod", "web-a")]
