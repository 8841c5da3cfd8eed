"""Tests for the HTTP API."""

from __future__ import annotations

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from kubestatus.exceptions import (
    CollectionError,
    ConfigurationError,
    InvalidSelectorError,
    KubestatusError,
    NoPodsFoundError,
    ResourceNotFoundError,
)
from kubestatus.kube import KubeContext
from kubestatus.models import Container, HealthLevel, HealthStatus, Pod, StatusOptions, Workload
from kubestatus.pipeline import StatusPipeline
from kubestatus.server import create_app
from kubestatus.tests.fakes import FakeAppsApi, FakeBatchApi, UnreachableApi


class FakePipeline:
    """Records the options it is run with and returns a canned result."""

    def __init__(self, workloads=None, error: Optional[KubestatusError] = None):
        self.workloads = workloads or []
        self.error = error
        self.options: Optional[StatusOptions] = None

    async def run(self, options: StatusOptions):
        self.options = options
        if self.error is not None:
            raise self.error
        return self.workloads


def sample_workload() -> Workload:
    pod = Pod(
        name="web-1",
        namespace="prod",
        status="Running",
        containers=[Container(name="app", status="Running", ready=True)],
        health=HealthStatus(HealthLevel.HEALTHY, "all containers running normally", 100),
    )
    return Workload(
        kind="Deployment", name="web", namespace="prod", replicas="1/1", pods=[pod],
        health=HealthStatus(HealthLevel.HEALTHY, "all pods running normally", 100),
    )


class TestStatusApi:
    """Tests for GET /api/status and /healthz."""

    def test_healthz(self) -> None:
        client = TestClient(create_app(FakePipeline()))

        assert client.get("/healthz").json() == {"ok": True}

    def test_status_returns_workloads(self) -> None:
        pipeline = FakePipeline([sample_workload()])
        client = TestClient(create_app(pipeline))

        response = client.get("/api/status", params={"target": "deploy/web", "namespace": "prod", "problematic": "true"})

        assert response.status_code == 200
        body = response.json()
        assert body["workloads"][0]["name"] == "web"
        assert body["workloads"][0]["health"]["level"] == "Healthy"
        assert body["workloads"][0]["pods"][0]["containers"][0]["type"] == "standard"
        assert pipeline.options.resource_name == "deploy/web"
        assert pipeline.options.namespace == "prod"
        assert pipeline.options.problematic is True

    def test_query_options(self) -> None:
        pipeline = FakePipeline()
        client = TestClient(create_app(pipeline))

        client.get("/api/status", params={
            "selector": "app=web", "all_namespaces": "true", "events": "true", "env": "true",
            "container": "app", "sort": "memory",
        })

        options = pipeline.options
        assert options.selector == "app=web"
        assert options.all_namespaces is True
        assert options.show_events is True
        assert options.show_env is True
        assert options.container_filter == "app"
        assert options.sort_by == "memory"

    def test_logs_and_wide(self) -> None:
        pipeline = FakePipeline()
        client = TestClient(create_app(pipeline))

        client.get("/api/status", params={"target": "pod/web-1", "logs": "true", "wide": "true"})

        assert pipeline.options.show_logs is True
        assert pipeline.options.extended_detail is True

    def test_defaults_leave_logs_and_wide_off(self) -> None:
        pipeline = FakePipeline()
        client = TestClient(create_app(pipeline))

        client.get("/api/status", params={"target": "web"})

        assert pipeline.options.show_logs is False
        assert pipeline.options.extended_detail is False

    def test_unreachable_cluster_is_bad_gateway(self) -> None:
        kube = KubeContext(UnreachableApi(), FakeAppsApi(), FakeBatchApi(), None, namespace="default")
        client = TestClient(create_app(StatusPipeline(kube)))

        response = client.get("/api/status", params={"target": "web"})

        assert response.status_code == 502
        assert response.json()["detail"].startswith("failed to get pod 'web': MaxRetryError")

    def test_invalid_sort_key(self) -> None:
        pipeline = FakePipeline()
        client = TestClient(create_app(pipeline))

        response = client.get("/api/status", params={"target": "web", "sort": "size"})

        assert response.status_code == 400
        assert pipeline.options is None

    @pytest.mark.parametrize(
        "error,status",
        [
            (ConfigurationError("resource name is required"), 400),
            (InvalidSelectorError("invalid selector: bad"), 400),
            (ResourceNotFoundError("resource 'web' not found"), 404),
            (NoPodsFoundError("no pods found matching selector app=x"), 404),
            (CollectionError("failed to collect pod info for pod web-1: boom", pod="web-1"), 502),
        ],
    )
    def test_error_mapping(self, error: KubestatusError, status: int) -> None:
        client = TestClient(create_app(FakePipeline(error=error)))

        response = client.get("/api/status", params={"target": "web"})

        assert response.status_code == status
        assert response.json()["detail"] == str(error)
