"""Kubernetes objects used for discovery and an API client that filters them by label."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping


class DiscoveryError(Exception):
    """Raised when a kube-state-metrics endpoint or node cannot be discovered."""


class NoKSMPodsFoundError(DiscoveryError):
    """Raised when no kube-state-metrics pod matches a label search."""


@dataclass
class Pod:
    """The parts of a Kubernetes pod that discovery looks at."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    host_ip: str = ""
    pod_ip: str = ""


@dataclass
class ServicePort:
    """One port exposed by a service."""

    name: str = ""
    port: int = 0
    protocol: str = "TCP"


@dataclass
class Service:
    """The parts of a Kubernetes service that discovery and grouping look at."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    selector: dict[str, str] = field(default_factory=dict)
    cluster_ip: str = ""
    ports: list[ServicePort] = field(default_factory=list)


@dataclass
class SRVRecord:
    """A DNS SRV answer."""

    target: str = ""
    port: int = 0
    priority: int = 0
    weight: int = 0


def _matches(labels: Mapping[str, str], selector: Mapping[str, str]) -> bool:
    return all(labels.get(key) == value for key, value in selector.items())


def _in_namespace(object_namespace: str, namespace: str) -> bool:
    return not namespace or object_namespace == namespace


class KubernetesClient:
    """Kubernetes API client answering label and namespace queries from known objects.

    An empty namespace means every namespace; an empty selector matches every object.
    """

    def __init__(self, pods: Iterable[Pod] = (), services: Iterable[Service] = ()) -> None:
        self.pods = list(pods)
        self.services = list(services)

    def find_pods_by_label(self, namespace: str, selector: Mapping[str, str]) -> list[Pod]:
        """Pods in ``namespace`` whose labels carry every pair in ``selector``."""
        return [
            pod
            for pod in self.pods
            if _in_namespace(pod.namespace, namespace) and _matches(pod.labels, selector)
        ]

    def find_services_by_label(
        self, namespace: str, selector: Mapping[str, str]
    ) -> list[Service]:
        """Services in ``namespace`` whose labels carry every pair in ``selector``."""
        return [
            service
            for service in self.services
            if _in_namespace(service.namespace, namespace)
            and _matches(service.labels, selector)
        ]

    def list_services(self, namespace: str) -> list[Service]:
        """All services in ``namespace``."""
        return [
            service for service in self.services if _in_namespace(service.namespace, namespace)
        ]