"""Fetch functions deriving container status and deployment names from KSM metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

PROMETHEUS_METRICS_PATH = "/metrics"

RawMetrics = dict[str, Any]
RawGroups = Mapping[str, Mapping[str, RawMetrics]]
FetchFunc = Callable[[str, str, RawGroups], Any]

_CONTAINER_STATUSES = ("running", "waiting", "terminated")


class FetchError(Exception):
    """Raised when a value cannot be fetched from raw metric groups."""


@dataclass
class Metric:
    """One Prometheus sample: its value and its labels."""

    value: Any = None
    labels: dict[str, str] = field(default_factory=dict)


def _raw_metric(group_label: str, entity_id: str, groups: RawGroups, key: str) -> Any:
    entity = (groups or {}).get(group_label, {}).get(entity_id)
    if entity is None:
        raise FetchError(f"entity {entity_id!r} not found in group {group_label!r}")
    if key not in entity:
        raise FetchError(f"metric {key!r} not found for {group_label} {entity_id!r}")
    return entity[key]


def _metric(group_label: str, entity_id: str, groups: RawGroups, key: str) -> Metric:
    value = _raw_metric(group_label, entity_id, groups, key)
    if not isinstance(value, Metric):
        raise FetchError(f"metric {key!r} is not a Prometheus metric")
    return value


def _from_value(key: str) -> FetchFunc:
    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> Any:
        value = _raw_metric(group_label, entity_id, groups, key)
        return value.value if isinstance(value, Metric) else value

    return fetch


def _from_label_value(key: str, label: str) -> FetchFunc:
    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> str:
        metric = _metric(group_label, entity_id, groups, key)
        if label not in metric.labels:
            raise FetchError(f"label {label!r} not found in metric {key!r}")
        return metric.labels[label]

    return fetch


def _related_entity_id(
    parent_group: str, group_label: str, entity_id: str, groups: RawGroups
) -> str:
    if parent_group == group_label:
        return entity_id
    entity = (groups or {}).get(group_label, {}).get(entity_id)
    if entity is None:
        raise FetchError(f"entity {entity_id!r} not found in group {group_label!r}")
    for value in entity.values():
        if not isinstance(value, Metric):
            continue
        namespace = value.labels.get("namespace")
        parent = value.labels.get(parent_group)
        if namespace and parent:
            return f"{namespace}_{parent}"
    raise FetchError(f"cannot find the {parent_group} related to {group_label} {entity_id!r}")


def _inherit_specific_label_values_from(
    parent_group: str, related_key: str, labels_to_retrieve: Mapping[str, str]
) -> FetchFunc:
    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> dict[str, str]:
        parent_id = _related_entity_id(parent_group, group_label, entity_id, groups)
        parent = _metric(parent_group, parent_id, groups, related_key)
        return {
            name: parent.labels[label]
            for name, label in labels_to_retrieve.items()
            if label in parent.labels
        }

    return fetch


def _replicaset_name_to_deployment_name(name: str) -> str:
    return "-".join(name.split("-")[:-1])


def _deployment_name_based_on_creator(kind: str, name: str) -> str:
    return _replicaset_name_to_deployment_name(name) if kind == "ReplicaSet" else ""


def get_status_for_container() -> FetchFunc:
    """Fetch "Running", "Waiting", "Terminated" or "Unknown" for a container."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> str:
        for status in _CONTAINER_STATUSES:
            try:
                value = _from_value(f"kube_pod_container_status_{status}")(
                    group_label, entity_id, groups
                )
            except FetchError:
                continue
            if value == 1:
                return status.capitalize()
        return "Unknown"

    return fetch


def get_deployment_name_for_replica_set() -> FetchFunc:
    """Fetch the name of the deployment that created a replica set."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> str:
        name = _from_label_value("kube_replicaset_created", "replicaset")(
            group_label, entity_id, groups
        )
        if not name:
            raise FetchError(
                "error generating deployment name for replica set. replicaset field is empty"
            )
        return _replicaset_name_to_deployment_name(name)

    return fetch


def get_deployment_name_for_pod() -> FetchFunc:
    """Fetch the deployment that created a pod, or "" when it was not a deployment."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> str:
        kind = _from_label_value("kube_pod_info", "created_by_kind")(
            group_label, entity_id, groups
        )
        if not kind:
            raise FetchError(
                "error generating deployment name for pod. created_by_kind field is empty"
            )
        name = _from_label_value("kube_pod_info", "created_by_name")(
            group_label, entity_id, groups
        )
        if not name:
            raise FetchError(
                "error generating deployment name for pod. created_by_name field is empty"
            )
        return _deployment_name_based_on_creator(kind, name)

    return fetch


def get_deployment_name_for_container() -> FetchFunc:
    """Fetch the deployment that created a container's pod, or "" when none did."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> str:
        pod_values = _inherit_specific_label_values_from(
            "pod",
            "kube_pod_info",
            {"created_by_kind": "created_by_kind", "created_by_name": "created_by_name"},
        )(group_label, entity_id, groups)
        kind = pod_values.get("created_by_kind")
        if not isinstance(kind, str) or not kind:
            raise FetchError(
                "error generating deployment name for container. created_by_kind field is missing"
            )
        name = pod_values.get("created_by_name")
        if not isinstance(name, str) or not name:
            raise FetchError(
                "error generating deployment name for container. created_by_name field is missing"
            )
        return _deployment_name_based_on_creator(kind, name)

    return fetch