import pytest

from kubestate.metric import (
    FetchError,
    Metric,
    get_deployment_name_for_container,
    get_deployment_name_for_pod,
    get_deployment_name_for_replica_set,
    get_status_for_container,
)

POD_RAW_ID = "kube-system_fluentd-elasticsearch-jnqb7_kube-state-metrics"


@pytest.fixture
def raw_groups():
    return {
        "pod": {
            "fluentd-elasticsearch-jnqb7": {
                "kube_pod_start_time": Metric(
                    value=1507117436,
                    labels={"namespace": "kube-system", "pod": "fluentd-elasticsearch-jnqb7"},
                ),
                "kube_pod_info": Metric(
                    value=1,
                    labels={
                        "created_by_kind": "ReplicaSet",
                        "created_by_name": "fluentd-elasticsearch-fafnoa",
                        "namespace": "kube-system",
                        "node": "minikube",
                        "pod": "fluentd-elasticsearch-jnqb7",
                    },
                ),
            },
            "newrelic-infra-monitoring-cglrn": {
                "kube_pod_info": Metric(
                    value=1,
                    labels={
                        "created_by_kind": "DaemonSet",
                        "created_by_name": "newrelic-infra-monitoring",
                        "namespace": "kube-system",
                        "node": "minikube",
                        "pod": "newrelic-infra-monitoring-cglrn",
                    },
                ),
            },
        }
    }


def replicaset_groups(name):
    return {
        "replicaset": {
            "kube-state-metrics-4044341274": {
                "kube_replicaset_created": Metric(
                    value=1507117436,
                    labels={"namespace": "kube-system", "replicaset": name},
                )
            }
        }
    }


def container_groups(pod_labels):
    return {
        "pod": {
            "kube-system_kube-addon-manager-minikube": {
                "kube_pod_info": Metric(value=1507117436, labels=pod_labels),
            }
        },
        "container": {
            POD_RAW_ID: {
                "kube_pod_container_info": Metric(
                    value=1,
                    labels={
                        "container": "kube-state-metrics",
                        "namespace": "kube-system",
                        "pod": "kube-addon-manager-minikube",
                    },
                )
            }
        },
    }


def test_deployment_name_for_replica_set_valid_name():
    raw = replicaset_groups("kube-state-metrics-4044341274")
    value = get_deployment_name_for_replica_set()(
        "replicaset", "kube-state-metrics-4044341274", raw
    )
    assert value == "kube-state-metrics"


def test_deployment_name_for_replica_set_error_on_empty_data():
    raw = replicaset_groups("")
    with pytest.raises(FetchError) as info:
        get_deployment_name_for_replica_set()("replicaset", "kube-state-metrics-4044341274", raw)
    assert str(info.value) == (
        "error generating deployment name for replica set. replicaset field is empty"
    )


def test_deployment_name_for_replica_set_missing_metric():
    with pytest.raises(FetchError):
        get_deployment_name_for_replica_set()("replicaset", "other", replicaset_groups("x-1"))


def test_deployment_name_for_pod_created_by_replica_set(raw_groups):
    value = get_deployment_name_for_pod()("pod", "fluentd-elasticsearch-jnqb7", raw_groups)
    assert value == "fluentd-elasticsearch"


def test_deployment_name_for_pod_created_by_daemon_set(raw_groups):
    value = get_deployment_name_for_pod()("pod", "newrelic-infra-monitoring-cglrn", raw_groups)
    assert value == ""


def test_deployment_name_for_pod_not_created_by_replica_set():
    raw = {
        "pod": {
            "kube-addon-manager-minikube": {
                "kube_pod_info": Metric(
                    value=1507117436,
                    labels={"created_by_kind": "<none>", "created_by_name": "<none>"},
                )
            }
        }
    }
    assert get_deployment_name_for_pod()("pod", "kube-addon-manager-minikube", raw) == ""


def test_deployment_name_for_pod_error_on_empty_data():
    metric = Metric(
        value=1507117436,
        labels={"created_by_name": "newrelic-infra-monitoring", "created_by_kind": ""},
    )
    raw = {"pod": {"kube-addon-manager-minikube": {"kube_pod_info": metric}}}
    with pytest.raises(FetchError) as info:
        get_deployment_name_for_pod()("pod", "kube-addon-manager-minikube", raw)
    assert str(info.value) == (
        "error generating deployment name for pod. created_by_kind field is empty"
    )

    metric.labels = {"created_by_name": "", "created_by_kind": "DaemonSet"}
    with pytest.raises(FetchError) as info:
        get_deployment_name_for_pod()("pod", "kube-addon-manager-minikube", raw)
    assert str(info.value) == (
        "error generating deployment name for pod. created_by_name field is empty"
    )


def test_deployment_name_for_container_created_by_replica_set():
    raw = container_groups(
        {
            "created_by_kind": "ReplicaSet",
            "created_by_name": "fluentd-elasticsearch-fafnoa",
            "namespace": "kube-system",
            "node": "minikube",
            "pod": "kube-addon-manager-minikube",
        }
    )
    value = get_deployment_name_for_container()("container", POD_RAW_ID, raw)
    assert value == "fluentd-elasticsearch"


def test_deployment_name_for_container_not_created_by_replica_set():
    raw = container_groups(
        {
            "created_by_kind": "DaemonSet",
            "created_by_name": "newrelic-infra-monitoring",
            "namespace": "kube-system",
            "node": "minikube",
            "pod": "kube-addon-manager-minikube",
        }
    )
    assert get_deployment_name_for_container()("container", POD_RAW_ID, raw) == ""


def test_deployment_name_for_container_error_on_missing_data():
    pod_labels = {
        "namespace": "kube-system",
        "node": "minikube",
        "pod": "kube-addon-manager-minikube",
    }
    raw = container_groups(pod_labels)
    fetch = get_deployment_name_for_container()

    pod_labels["created_by_name"] = "newrelic-infra-monitoring"
    with pytest.raises(FetchError) as info:
        fetch("container", POD_RAW_ID, raw)
    assert str(info.value) == (
        "error generating deployment name for container. created_by_kind field is missing"
    )

    pod_labels["created_by_name"] = ""
    pod_labels["created_by_kind"] = "DaemonSet"
    with pytest.raises(FetchError) as info:
        fetch("container", POD_RAW_ID, raw)
    assert str(info.value) == (
        "error generating deployment name for container. created_by_name field is missing"
    )

    raw["pod"]["kube-system_kube-addon-manager-minikube"]["kube_pod_info"].labels = {
        "namespace": "kube-system",
        "node": "minikube",
        "pod": "kube-addon-manager-minikube",
    }
    with pytest.raises(FetchError) as info:
        fetch("container", POD_RAW_ID, raw)
    assert str(info.value) == (
        "error generating deployment name for container. created_by_kind field is missing"
    )


@pytest.mark.parametrize(
    "status,expected",
    [
        ("running", "Running"),
        ("terminated", "Terminated"),
        ("waiting", "Waiting"),
        ("whatever", "Unknown"),
    ],
)
def test_status_for_container(status, expected):
    raw = {
        "container": {
            "kube-addon-manager-minikube": {
                f"kube_pod_container_status_{status}": Metric(
                    value=1, labels={"namespace": "kube-system"}
                )
            }
        }
    }
    fetch = get_status_for_container()
    assert fetch("container", "kube-addon-manager-minikube", raw) == expected


def test_status_for_container_ignores_zero_values():
    raw = {
        "container": {
            "c": {
                "kube_pod_container_status_running": Metric(value=0),
                "kube_pod_container_status_waiting": Metric(value=1),
            }
        }
    }
    assert get_status_for_container()("container", "c", raw) == "Waiting"