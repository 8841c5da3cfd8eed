"""Tests for pod and container extraction."""

from __future__ import annotations

from datetime import timedelta

import pytest
from kubernetes import client

from kubestatus.models import ContainerType, ContainerUsage
from kubestatus.pod_processing import (
    build_container,
    extract_conditions,
    extract_env_vars,
    extract_network,
    extract_probe_info,
    extract_volumes,
    is_sensitive_env_var,
    pod_status,
)
from kubestatus.tests.fakes import (
    NOW,
    PROBE_EXEC_FIELD,
    container_spec,
    http_probe,
    make_pod,
    running,
    terminated,
    waiting,
)


class TestPodStatus:
    """Tests for pod_status."""

    def test_phase(self) -> None:
        assert pod_status(make_pod("web-1", phase="Pending")) == "Pending"

    def test_deletion_takes_precedence(self) -> None:
        assert pod_status(make_pod("web-1", phase="Running", deleting=True)) == "Terminating"

    def test_missing_phase(self) -> None:
        pod = make_pod("web-1")
        pod.status.phase = None

        assert pod_status(pod) == "Unknown"


class TestContainerState:
    """Tests for container status derivation in build_container."""

    def test_running(self) -> None:
        pod = make_pod("web-1", statuses=[running("app", restarts=0)])

        container = build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None)

        assert container.status == "Running"
        assert container.ready is True
        assert container.started_at == NOW - timedelta(hours=2)
        assert container.last_restart_time is None
        assert container.last_state == "None"

    def test_running_after_restart(self) -> None:
        previous = client.V1ContainerStateTerminated(exit_code=137, reason="OOMKilled")
        started = NOW - timedelta(minutes=1)
        pod = make_pod("web-1", statuses=[running("app", restarts=2, started_at=started, last_terminated=previous)])

        container = build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None)

        assert container.restart_count == 2
        assert container.last_restart_time == started
        assert container.last_state == "Terminated"
        assert container.last_state_reason == "OOMKilled"
        assert container.exit_code == 137
        assert container.termination_reason == ""

    def test_waiting_reason_becomes_status(self) -> None:
        pod = make_pod("web-1", statuses=[waiting("app", reason="CrashLoopBackOff", restarts=4)])

        container = build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None)

        assert container.status == "CrashLoopBackOff"
        assert container.ready is False

    def test_waiting_without_reason(self) -> None:
        pod = make_pod("web-1", statuses=[waiting("app", reason=None)])

        container = build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None)

        assert container.status == "Waiting"

    def test_init_container_exit_zero_is_completed(self) -> None:
        init = container_spec("setup")
        pod = make_pod("web-1", init_containers=[init], init_statuses=[terminated("setup", exit_code=0)])

        container = build_container(init, pod, ContainerType.INIT, None)

        assert container.type == ContainerType.INIT
        assert container.status == "Completed"
        assert container.exit_code == 0

    def test_init_container_failure_is_terminated(self) -> None:
        init = container_spec("setup")
        pod = make_pod("web-1", init_containers=[init], init_statuses=[terminated("setup", exit_code=1, reason="Error")])

        container = build_container(init, pod, ContainerType.INIT, None)

        assert container.status == "Terminated"
        assert container.exit_code == 1
        assert container.termination_reason == "Error"

    def test_standard_container_exit_zero_is_terminated(self) -> None:
        pod = make_pod("job-1", statuses=[terminated("app", exit_code=0)], phase="Succeeded")

        container = build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None)

        assert container.status == "Terminated"
        assert container.finished_at == NOW - timedelta(minutes=29)

    def test_status_looked_up_in_matching_list(self) -> None:
        init = container_spec("app")
        pod = make_pod(
            "web-1",
            init_containers=[init],
            init_statuses=[terminated("app", exit_code=0)],
            statuses=[waiting("app", reason="ImagePullBackOff")],
        )

        assert build_container(init, pod, ContainerType.INIT, None).status == "Completed"
        assert build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None).status == "ImagePullBackOff"

    def test_missing_status_is_unknown(self) -> None:
        pod = make_pod("web-1", statuses=[])

        assert build_container(pod.spec.containers[0], pod, ContainerType.STANDARD, None).status == "Unknown"

    def test_usage_flows_into_resources(self) -> None:
        spec = container_spec(limits={"cpu": "200m", "memory": "100Mi"})
        pod = make_pod("web-1", containers=[spec])

        container = build_container(spec, pod, ContainerType.STANDARD, ContainerUsage("150m", "90Mi"))

        assert container.resources.cpu_percentage == pytest.approx(75.0)
        assert container.resources.mem_percentage == pytest.approx(90.0)

    def test_extended_detail_toggle(self) -> None:
        spec = container_spec(
            env=[client.V1EnvVar(name="MODE", value="prod")],
            mounts=[client.V1VolumeMount(name="data", mount_path="/data")],
        )
        pod = make_pod("web-1", containers=[spec])

        basic = build_container(spec, pod, ContainerType.STANDARD, None, extended=False)
        full = build_container(spec, pod, ContainerType.STANDARD, None, extended=True)

        assert basic.environment == [] and basic.volumes == []
        assert [e.name for e in full.environment] == ["MODE"]
        assert [v.name for v in full.volumes] == ["data"]
        assert full.ports[0].container_port == 8080


class TestProbes:
    """Tests for extract_probe_info."""

    def test_readiness_mirrors_ready_flag(self) -> None:
        spec = container_spec(readiness=http_probe("/ready"), liveness=http_probe())

        info = extract_probe_info(spec, running("app", ready=False))

        assert info.readiness.configured
        assert info.readiness.type == "HTTP"
        assert info.readiness.path == "/ready"
        assert info.readiness.port == "8080"
        assert info.readiness.passing is False
        assert info.liveness.passing is True
        assert info.startup.configured is False

    def test_probe_types(self) -> None:
        spec = container_spec(
            liveness=client.V1Probe(tcp_socket=client.V1TCPSocketAction(port=5432)),
            readiness=client.V1Probe(**{PROBE_EXEC_FIELD: client.V1ExecAction(command=["pg_isready"])}),
        )

        info = extract_probe_info(spec, running("app"))

        assert info.liveness.type == "TCP"
        assert info.liveness.port == "5432"
        assert info.readiness.type == "Exec"
        assert info.readiness.passing is True

    def test_readiness_without_status(self) -> None:
        info = extract_probe_info(container_spec(readiness=http_probe()), None)

        assert info.readiness.passing is False


class TestVolumes:
    """Tests for extract_volumes."""

    def test_volume_sources(self) -> None:
        spec = container_spec(mounts=[
            client.V1VolumeMount(name="config", mount_path="/etc/app", read_only=True),
            client.V1VolumeMount(name="creds", mount_path="/secrets"),
            client.V1VolumeMount(name="data", mount_path="/data"),
            client.V1VolumeMount(name="scratch", mount_path="/tmp"),
            client.V1VolumeMount(name="host", mount_path="/host"),
            client.V1VolumeMount(name="missing", mount_path="/missing"),
        ])
        volumes = [
            client.V1Volume(name="config", config_map=client.V1ConfigMapVolumeSource(name="app-config")),
            client.V1Volume(name="creds", secret=client.V1SecretVolumeSource(secret_name="db-creds")),
            client.V1Volume(
                name="data",
                persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(claim_name="data-0"),
            ),
            client.V1Volume(name="scratch", empty_dir=client.V1EmptyDirVolumeSource()),
            client.V1Volume(name="host", host_path=client.V1HostPathVolumeSource(path="/var/log")),
        ]
        pod = make_pod("web-1", containers=[spec], volumes=volumes)

        result = {v.name: v for v in extract_volumes(spec, pod)}

        assert (result["config"].volume_type, result["config"].details) == ("ConfigMap", "configmap/app-config")
        assert result["config"].read_only is True
        assert (result["creds"].volume_type, result["creds"].details) == ("Secret", "secret/db-creds")
        assert (result["data"].volume_type, result["data"].details) == ("PVC", "pvc/data-0")
        assert (result["scratch"].volume_type, result["scratch"].details) == ("EmptyDir", "emptyDir")
        assert (result["host"].volume_type, result["host"].details) == ("Other", "unknown")
        assert result["missing"].volume_type == "Other"


class TestEnvironment:
    """Tests for extract_env_vars."""

    def test_sensitive_names(self) -> None:
        assert is_sensitive_env_var("DB_PASSWORD")
        assert is_sensitive_env_var("api_token")
        assert is_sensitive_env_var("AWS_SECRET_ACCESS_KEY")
        assert is_sensitive_env_var("PASSPHRASE")
        assert not is_sensitive_env_var("LOG_LEVEL")

    def test_literal_and_masked_values(self) -> None:
        spec = container_spec(env=[
            client.V1EnvVar(name="LOG_LEVEL", value="debug"),
            client.V1EnvVar(name="DB_PASSWORD", value="hunter2"),
        ])

        env = {e.name: e for e in extract_env_vars(spec, make_pod("web-1", containers=[spec]))}

        assert env["LOG_LEVEL"].value == "debug"
        assert env["LOG_LEVEL"].masked is False
        assert env["DB_PASSWORD"].value == "***"
        assert env["DB_PASSWORD"].masked is True

    def test_value_references(self) -> None:
        spec = container_spec(env=[
            client.V1EnvVar(name="POD_NAME", value_from=client.V1EnvVarSource(
                field_ref=client.V1ObjectFieldSelector(field_path="metadata.name"))),
            client.V1EnvVar(name="NODE", value_from=client.V1EnvVarSource(
                field_ref=client.V1ObjectFieldSelector(field_path="spec.nodeName"))),
            client.V1EnvVar(name="POD_IP", value_from=client.V1EnvVarSource(
                field_ref=client.V1ObjectFieldSelector(field_path="status.podIP"))),
            client.V1EnvVar(name="LABEL", value_from=client.V1EnvVarSource(
                field_ref=client.V1ObjectFieldSelector(field_path="metadata.labels['app']"))),
            client.V1EnvVar(name="DB_URL", value_from=client.V1EnvVarSource(
                secret_key_ref=client.V1SecretKeySelector(name="db", key="url"))),
            client.V1EnvVar(name="MODE", value_from=client.V1EnvVarSource(
                config_map_key_ref=client.V1ConfigMapKeySelector(name="app", key="mode"))),
            client.V1EnvVar(name="CPU_LIMIT", value_from=client.V1EnvVarSource(
                resource_field_ref=client.V1ResourceFieldSelector(resource="limits.cpu"))),
        ])
        pod = make_pod("web-1", containers=[spec])

        env = {e.name: e for e in extract_env_vars(spec, pod)}

        assert env["POD_NAME"].value == "web-1"
        assert env["NODE"].value == "node-a"
        assert env["POD_IP"].value == "10.0.0.5"
        assert env["LABEL"].value == "[fieldRef:metadata.labels['app']]"
        assert env["DB_URL"].value == "***"
        assert env["DB_URL"].masked is True
        assert env["MODE"].value == "[configMap:app/mode]"
        assert env["CPU_LIMIT"].value == "[resource:limits.cpu]"


class TestPodLevel:
    """Tests for conditions and network extraction."""

    def test_conditions(self) -> None:
        conditions = extract_conditions(make_pod("web-1"))

        assert [(c.type, c.status) for c in conditions] == [("Ready", "True")]

    def test_network(self) -> None:
        info = extract_network(make_pod("web-1"))

        assert info.pod_ip == "10.0.0.5"
        assert info.pod_ips == ["10.0.0.5"]
        assert info.host_ip == "192.168.1.10"
        assert info.host_network is False

    def test_network_falls_back_to_pod_ip(self) -> None:
        assert extract_network(make_pod("web-1", pod_ips=[])).pod_ips == ["10.0.0.5"]

    def test_dual_stack_pod_ips(self) -> None:
        info = extract_network(make_pod("web-1", pod_ips=["10.0.0.5", "fd00::5"]))

        assert info.pod_ip == "10.0.0.5"
        assert info.pod_ips == ["10.0.0.5", "fd00::5"]
