"""Discovery of kube-state-metrics endpoints and helpers for deriving attributes from its metrics."""

__version__ = "0.1.0"