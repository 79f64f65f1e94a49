"""Discovery of the kube-state-metrics endpoint through DNS or the Kubernetes API."""

from __future__ import annotations

import logging
import random
import socket
import struct
from dataclasses import dataclass
from typing import Any, Callable, Sequence
from urllib.parse import SplitResult, urlsplit, urlunsplit

from kubestate.client import KSMClient
from kubestate.kubeapi import DiscoveryError, SRVRecord

KSM_APP_LABEL_NAMES = ("app.kubernetes.io/name", "k8s-app", "app")
KSM_APP_LABEL_VALUE = "kube-state-metrics"
KSM_PORT_NAME = "http-metrics"
K8S_TCP = "TCP"
KSM_QUALIFIED_NAME = "kube-state-metrics.kube-system.svc.cluster.local"
KSM_DNS_SERVICE = "http-metrics"
KSM_DNS_PROTO = "tcp"
HEADLESS_SERVICE_CLUSTER_IP = "None"

LookupSRV = Callable[[str, str, str], Sequence[SRVRecord]]

_TYPE_SRV = 33
_CLASS_IN = 1
_DNS_PORT = 53


def _nameserver(path: str = "/etc/resolv.conf") -> str:
    try:
        with open(path, encoding="utf-8") as handle:
            for line in handle:
                fields = line.split()
                if len(fields) >= 2 and fields[0] == "nameserver":
                    return fields[1]
    except OSError:
        pass
    return "127.0.0.1"


def _encode_name(name: str) -> bytes:
    out = bytearray()
    for label in name.rstrip(".").split("."):
        raw = label.encode("ascii")
        if not raw or len(raw) > 63:
            raise OSError(f"invalid DNS name {name!r}")
        out.append(len(raw))
        out += raw
    out.append(0)
    return bytes(out)


def _build_srv_query(query_id: int, name: str) -> bytes:
    header = struct.pack("!HHHHHH", query_id, 0x0100, 1, 0, 0, 0)
    return header + _encode_name(name) + struct.pack("!HH", _TYPE_SRV, _CLASS_IN)


def _read_name(message: bytes, offset: int) -> tuple[str, int]:
    labels = []
    end = None
    jumps = 0
    while True:
        if offset >= len(message):
            raise OSError("truncated DNS name")
        length = message[offset]
        if length & 0xC0 == 0xC0:
            if offset + 1 >= len(message):
                raise OSError("truncated DNS name pointer")
            if end is None:
                end = offset + 2
            jumps += 1
            if jumps > 64:
                raise OSError("DNS name compression loop")
            offset = ((length & 0x3F) << 8) | message[offset + 1]
            continue
        offset += 1
        if length == 0:
            break
        labels.append(message[offset : offset + length].decode("ascii", "replace"))
        offset += length
    return ".".join(labels) + ".", end if end is not None else offset


def _parse_srv_response(message: bytes, query_id: int) -> list[SRVRecord]:
    try:
        ident, flags, qdcount, ancount, _, _ = struct.unpack_from("!HHHHHH", message, 0)
        if ident != query_id:
            raise OSError("mismatched DNS response id")
        rcode = flags & 0x000F
        if rcode:
            raise OSError(f"DNS lookup failed with rcode {rcode}")
        offset = 12
        for _ in range(qdcount):
            _, offset = _read_name(message, offset)
            offset += 4
        records = []
        for _ in range(ancount):
            _, offset = _read_name(message, offset)
            rtype, rclass, _ttl, rdlength = struct.unpack_from("!HHIH", message, offset)
            offset += 10
            if rtype == _TYPE_SRV and rclass == _CLASS_IN:
                priority, weight, port = struct.unpack_from("!HHH", message, offset)
                target, _ = _read_name(message, offset + 6)
                records.append(
                    SRVRecord(target=target, port=port, priority=priority, weight=weight)
                )
            offset += rdlength
    except struct.error as exc:
        raise OSError("truncated DNS response") from exc
    records.sort(key=lambda record: (record.priority, -record.weight))
    return records


def _lookup_srv(service: str, proto: str, name: str) -> list[SRVRecord]:
    """Resolve ``_service._proto.name`` SRV records with the system nameserver."""
    query_id = random.randrange(1 << 16)
    query = _build_srv_query(query_id, f"_{service}._{proto}.{name}")
    server = _nameserver()
    family = socket.AF_INET6 if ":" in server else socket.AF_INET
    with socket.socket(family, socket.SOCK_DGRAM) as sock:
        sock.settimeout(5.0)
        sock.sendto(query, (server, _DNS_PORT))
        response, _ = sock.recvfrom(4096)
    return _parse_srv_response(response, query_id)


def _host_endpoint(host: str, port: int) -> SplitResult:
    return SplitResult(scheme="", netloc=f"{host}:{port}", path="", query="", fragment="")


def _labels_text() -> str:
    return "[" + " ".join(KSM_APP_LABEL_NAMES) + "]"


@dataclass
class DiscovererConfig:
    """Settings for :func:`new_discoverer`."""

    k8s_client: Any = None
    logger: logging.Logger | None = None
    lookup_srv: LookupSRV | None = None
    overridden_endpoint: str = ""
    namespace: str = ""


class Discoverer:
    """Finds kube-state-metrics by DNS, falling back to the Kubernetes API."""

    def __init__(
        self,
        k8s_client: Any,
        logger: logging.Logger,
        lookup_srv: LookupSRV | None = None,
        overridden_endpoint: str = "",
        namespace: str = "",
    ) -> None:
        self.k8s_client = k8s_client
        self.logger = logger
        self.lookup_srv = lookup_srv or _lookup_srv
        self.overridden_endpoint = overridden_endpoint
        self.namespace = namespace

    def discover(self, timeout: float) -> KSMClient:
        """Return a client for the discovered endpoint, raising DiscoveryError on failure."""
        if self.overridden_endpoint:
            self.logger.debug("Using user-defined KSM endpoint %s", self.overridden_endpoint)
            try:
                endpoint = urlsplit(self.overridden_endpoint)
            except ValueError as exc:
                raise DiscoveryError(f"wrong user-provided KSM endpoint: {exc}") from exc
        else:
            self.logger.debug("Attempting DNS discovery of KSM endpoint")
            try:
                endpoint = self._dns_discover()
            except DiscoveryError:
                self.logger.debug("Attempting API server discovery of KSM endpoint")
                try:
                    endpoint = self._api_discover()
                except DiscoveryError as exc:
                    raise DiscoveryError(
                        f"failed to discover kube-state-metrics endpoint, got error: {exc}"
                    ) from exc

        # KSM and Prometheus only work with HTTP.
        endpoint = endpoint._replace(scheme="http")
        try:
            node_ip = self._node_ip()
        except DiscoveryError as exc:
            raise DiscoveryError(
                f"failed to discover nodeIP with kube-state-metrics, got error: {exc}"
            ) from exc

        self.logger.debug(
            "KSM client created with endpoint=%s and nodeIP=%s", urlunsplit(endpoint), node_ip
        )
        return KSMClient(node_ip=node_ip, endpoint=endpoint, timeout=timeout, logger=self.logger)

    def _dns_discover(self) -> SplitResult:
        try:
            records = self.lookup_srv(KSM_DNS_SERVICE, KSM_DNS_PROTO, KSM_QUALIFIED_NAME)
        except OSError:
            records = []
        for record in records:
            if record.target == HEADLESS_SERVICE_CLUSTER_IP:
                continue
            return _host_endpoint(KSM_QUALIFIED_NAME, record.port)
        raise DiscoveryError(f"can't get DNS port for {KSM_QUALIFIED_NAME}")

    def _find_by_ksm_labels(self, finder: Callable[..., Sequence[Any]], kind: str) -> list:
        items: list = []
        last_error: Exception | None = None
        for label in KSM_APP_LABEL_NAMES:
            try:
                items = list(finder(self.namespace, {label: KSM_APP_LABEL_VALUE}))
            except Exception as exc:  # the API client is pluggable; any failure counts
                last_error = exc
                items = []
                continue
            last_error = None
            if items:
                break
        if last_error is not None:
            raise DiscoveryError(str(last_error)) from last_error
        if not items:
            raise DiscoveryError(
                f"no {kind} found by any of labels {_labels_text()} "
                f"with value {KSM_APP_LABEL_VALUE}"
            )
        return items

    def _api_discover(self) -> SplitResult:
        services = self._find_by_ksm_labels(self.k8s_client.find_services_by_label, "services")
        for service in services:
            if not service.cluster_ip or not service.ports:
                continue
            named = next((p for p in service.ports if p.name == KSM_PORT_NAME), None)
            if named is not None:
                return _host_endpoint(service.cluster_ip, named.port)
            tcp = next((p for p in service.ports if p.protocol == K8S_TCP), None)
            if tcp is not None:
                return _host_endpoint(service.cluster_ip, tcp.port)
        raise DiscoveryError("could not guess the Kube State Metrics host/port")

    def _node_ip(self) -> str:
        pods = self._find_by_ksm_labels(self.k8s_client.find_pods_by_label, "pods")
        # Pick the lowest host IP so every caller settles on the same pod.
        host_ips = [pod.host_ip for pod in pods if pod.host_ip]
        if not host_ips:
            raise DiscoveryError("no HostIP address found for KSM node")
        return min(host_ips)


def new_discoverer(config: DiscovererConfig) -> Discoverer:
    """Build a :class:`Discoverer`, raising ValueError when a required setting is missing."""
    if config.k8s_client is None:
        raise ValueError("API client can't be nil")
    if config.logger is None:
        raise ValueError("logger can't be nil")
    return Discoverer(
        k8s_client=config.k8s_client,
        logger=config.logger,
        lookup_srv=config.lookup_srv,
        overridden_endpoint=config.overridden_endpoint,
        namespace=config.namespace,
    )