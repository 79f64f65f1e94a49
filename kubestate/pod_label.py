"""Discovery of kube-state-metrics pods by a dedicated pod label."""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from typing import Any
from urllib.parse import SplitResult

from kubestate.client import KSMClient
from kubestate.kubeapi import DiscoveryError, NoKSMPodsFoundError, Pod

_DISTRIBUTED_KSM_PORT = 8080
_SUPPORTED_SCHEMES = ("http", "https")


def _endpoint(scheme: str, host: str, port: int) -> SplitResult:
    return SplitResult(scheme=scheme, netloc=f"{host}:{port}", path="", query="", fragment="")


def _find_labeled_pods(k8s_client: Any, namespace: str, label: str, what: str) -> list[Pod]:
    try:
        pods = list(k8s_client.find_pods_by_label(namespace, {label: "true"}))
    except Exception as exc:  # the API client is pluggable; any failure counts
        raise DiscoveryError(f"querying API server for {what}: {exc}") from exc
    if not pods:
        raise NoKSMPodsFoundError(
            f'discovering KSM with label "{label}" in namespace "{namespace}": '
            "no KSM pods found"
        )
    return pods


def _insecure_tls_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@dataclass
class PodLabelDiscovererConfig:
    """Settings for :func:`new_pod_label_discoverer`."""

    ksm_pod_label: str = ""
    ksm_pod_port: int = 0
    ksm_scheme: str = ""
    ksm_namespace: str = ""
    logger: logging.Logger | None = None
    k8s_client: Any = None


class PodLabelDiscoverer:
    """Finds one kube-state-metrics pod carrying ``<label>=true``."""

    def __init__(
        self,
        k8s_client: Any,
        logger: logging.Logger,
        ksm_pod_label: str,
        ksm_pod_port: int = 0,
        ksm_scheme: str = "",
        ksm_namespace: str = "",
    ) -> None:
        self.k8s_client = k8s_client
        self.logger = logger
        self.ksm_pod_label = ksm_pod_label
        self.ksm_pod_port = ksm_pod_port
        self.ksm_scheme = ksm_scheme
        self.ksm_namespace = ksm_namespace

    def _find_single_pod(self) -> Pod:
        pods = _find_labeled_pods(
            self.k8s_client, self.ksm_namespace, self.ksm_pod_label, "Pods"
        )
        # Every node must settle on the same pod, so take the highest host IP.
        candidates = [pod for pod in pods if pod.host_ip]
        return max(candidates, key=lambda pod: pod.host_ip, default=Pod())

    def discover(self, timeout: float) -> KSMClient:
        """Return a client for the chosen pod, raising DiscoveryError on failure."""
        pod = self._find_single_pod()
        endpoint = _endpoint(self.ksm_scheme, pod.pod_ip, self.ksm_pod_port)
        context = _insecure_tls_context() if endpoint.scheme == "https" else None
        return KSMClient(
            node_ip=pod.host_ip,
            endpoint=endpoint,
            timeout=timeout,
            logger=self.logger,
            ssl_context=context,
        )


def new_pod_label_discoverer(config: PodLabelDiscovererConfig) -> PodLabelDiscoverer:
    """Build a :class:`PodLabelDiscoverer`, raising ValueError on a bad setting."""
    if config.logger is None:
        raise ValueError("logger must be set")
    if not config.ksm_pod_label:
        raise ValueError("KSM pod label can't be empty")
    if config.ksm_pod_port == 0:
        raise ValueError("KSM pod port can't be zero")
    if config.k8s_client is None:
        raise ValueError("Kubernetes client must be set")
    if not config.ksm_scheme:
        raise ValueError("KMS scheme can't be empty")
    if config.ksm_scheme not in _SUPPORTED_SCHEMES:
        raise ValueError(
            f"unsupported KSM scheme. Expected 'http' or 'https', got \"{config.ksm_scheme}\""
        )
    return PodLabelDiscoverer(
        k8s_client=config.k8s_client,
        logger=config.logger,
        ksm_pod_label=config.ksm_pod_label,
        ksm_pod_port=config.ksm_pod_port,
        ksm_scheme=config.ksm_scheme,
        ksm_namespace=config.ksm_namespace,
    )


@dataclass
class DistributedPodLabelDiscovererConfig:
    """Settings for :func:`new_distributed_pod_label_discoverer`."""

    ksm_pod_label: str = ""
    node_ip: str = ""
    ksm_namespace: str = ""
    k8s_client: Any = None
    logger: logging.Logger | None = None


class DistributedPodLabelDiscoverer:
    """Finds every labelled kube-state-metrics pod running on this node."""

    def __init__(
        self,
        k8s_client: Any,
        logger: logging.Logger,
        own_node_ip: str,
        ksm_pod_label: str = "",
        ksm_namespace: str = "",
    ) -> None:
        self.k8s_client = k8s_client
        self.logger = logger
        self.own_node_ip = own_node_ip
        self.ksm_pod_label = ksm_pod_label
        self.ksm_namespace = ksm_namespace

    def _pods_on_node(self) -> list[Pod]:
        pods = _find_labeled_pods(
            self.k8s_client, self.ksm_namespace, self.ksm_pod_label, "pods"
        )
        found = []
        for pod in pods:
            if pod.host_ip and pod.host_ip == self.own_node_ip:
                self.logger.debug("Found KSM pod running on this node, pod IP: %s", pod.pod_ip)
                found.append(pod)
        return found

    def discover(self, timeout: float) -> list[KSMClient]:
        """Return one client per KSM pod on this node."""
        return [
            KSMClient(
                node_ip=pod.host_ip,
                endpoint=_endpoint("http", pod.pod_ip, _DISTRIBUTED_KSM_PORT),
                timeout=timeout,
                logger=self.logger,
            )
            for pod in self._pods_on_node()
        ]


def new_distributed_pod_label_discoverer(
    config: DistributedPodLabelDiscovererConfig,
) -> DistributedPodLabelDiscoverer:
    """Build a :class:`DistributedPodLabelDiscoverer`, raising ValueError on a bad setting."""
    if config.logger is None:
        raise ValueError("logger must be set")
    if not config.ksm_pod_label:
        raise ValueError("KSM pod label can't be empty")
    if config.k8s_client is None:
        raise ValueError("Kubernetes client must be set")
    if not config.node_ip:
        raise ValueError("node IP can't be empty")
    return DistributedPodLabelDiscoverer(
        k8s_client=config.k8s_client,
        logger=config.logger,
        own_node_ip=config.node_ip,
        ksm_pod_label=config.ksm_pod_label,
        ksm_namespace=config.ksm_namespace,
    )