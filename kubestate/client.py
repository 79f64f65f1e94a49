"""HTTP client for a kube-state-metrics endpoint."""

from __future__ import annotations

import logging
import posixpath
import ssl
import urllib.request
from dataclasses import dataclass, field
from http.client import HTTPResponse
from urllib.parse import SplitResult, urlunsplit

ACCEPT_HEADER = "text/plain; version=0.0.4"

_LOGGER = logging.getLogger(__name__)


def _join_path(base: str, extra: str) -> str:
    parts = [part for part in (base, extra) if part]
    if not parts:
        return ""
    return posixpath.normpath("/".join(parts))


@dataclass
class KSMClient:
    """Sends Prometheus plain-text requests to one kube-state-metrics endpoint."""

    node_ip: str
    endpoint: SplitResult
    timeout: float = 5.0
    logger: logging.Logger = field(default=_LOGGER, compare=False, repr=False)
    ssl_context: ssl.SSLContext | None = field(default=None, compare=False, repr=False)

    def get(self, url_path: str) -> HTTPResponse:
        """GET ``url_path`` below the endpoint's path and return the open response."""
        path = _join_path(self.endpoint.path, url_path)
        if path and self.endpoint.netloc and not path.startswith("/"):
            path = "/" + path
        url = urlunsplit(self.endpoint._replace(path=path))
        try:
            request = urllib.request.Request(
                url, headers={"Accept": ACCEPT_HEADER}, method="GET"
            )
        except ValueError as exc:
            raise ValueError(f"Error creating request to: {url}. Got error: {exc}") from exc

        self.logger.debug("Calling kube-state-metrics endpoint: %s", request.full_url)
        return urllib.request.urlopen(request, timeout=self.timeout, context=self.ssl_context)