"""Conversions between kube-state-metrics clients and their cacheable form."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import SplitResult

from kubestate.client import KSMClient

CACHED_KEY = "ksm-client"


@dataclass
class Cache:
    """What is kept of one discovered client."""

    endpoint: SplitResult
    node_ip: str = ""


@dataclass
class MultiCache:
    """What is kept of several discovered clients."""

    endpoints: list[SplitResult] = field(default_factory=list)
    node_ip: str = ""


def compose(source: Cache, logger: logging.Logger, timeout: float) -> KSMClient:
    """Rebuild a client from cached data."""
    if not isinstance(source, Cache):
        raise TypeError(f"expected Cache, got {type(source).__name__}")
    return KSMClient(
        node_ip=source.node_ip, endpoint=source.endpoint, timeout=timeout, logger=logger
    )


def decompose(source: KSMClient) -> Cache:
    """Extract the cacheable data of a client."""
    if not isinstance(source, KSMClient):
        raise TypeError(f"expected KSMClient, got {type(source).__name__}")
    return Cache(endpoint=source.endpoint, node_ip=source.node_ip)


def multi_compose(source: MultiCache, logger: logging.Logger, timeout: float) -> list[KSMClient]:
    """Rebuild one client per cached endpoint, all sharing the cached node IP."""
    if not isinstance(source, MultiCache):
        raise TypeError(f"expected MultiCache, got {type(source).__name__}")
    return [
        KSMClient(node_ip=source.node_ip, endpoint=endpoint, timeout=timeout, logger=logger)
        for endpoint in source.endpoints
    ]


def multi_decompose(sources: Iterable[KSMClient]) -> MultiCache:
    """Collect the endpoints of many clients and the first non-empty node IP."""
    cache = MultiCache()
    for source in sources:
        if not isinstance(source, KSMClient):
            raise TypeError(f"expected KSMClient, got {type(source).__name__}")
        cache.endpoints.append(source.endpoint)
        if not cache.node_ip:
            cache.node_ip = source.node_ip
    return cache