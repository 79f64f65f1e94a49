"""Grouping of kube-state-metrics data enriched with API server information."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, MutableMapping

from kubestate.metric import Metric, RawMetrics

SERVICE_SELECTORS_METRIC = "apiserver_kube_service_spec_selectors"

_LOGGER = logging.getLogger(__name__)


@dataclass
class KSMGrouper:
    """Groups KSM metrics and adds data fetched from the Kubernetes API."""

    k8s_client: Any
    queries: list = field(default_factory=list)
    client: Any = None
    logger: logging.Logger = field(default=_LOGGER, repr=False)

    def add_service_spec_selector_to_group(
        self, service_group: MutableMapping[str, RawMetrics]
    ) -> None:
        """Add each known service's spec selectors as a metric of its group entry."""
        try:
            services = self.k8s_client.list_services("")
        except Exception as exc:  # the API client is pluggable; any failure counts
            raise RuntimeError(f"listing services: {exc}") from exc

        for service in services:
            raw_metrics = service_group.get(f"{service.namespace}_{service.name}")
            if raw_metrics is None:
                continue
            labels = {f"selector_{key}": value for key, value in service.selector.items()}
            raw_metrics[SERVICE_SELECTORS_METRIC] = Metric(value=None, labels=labels)