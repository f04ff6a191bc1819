"""
Defines the Prometheus metrics recorded by the client.

The library only records; exposing the default registry (``start_http_server``
or a web framework integration) is left to the host application.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test reloads, multiple clients in one process) must
# not fail on duplicate registration, so existing collectors are reused.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "requests_total": Counter(
            "outscraper_requests_total",
            "Total number of API requests by endpoint and outcome",
            ["endpoint", "outcome"],
        ),
        "request_latency_seconds": Histogram(
            "outscraper_request_latency_seconds",
            "API request latency in seconds",
            ["endpoint"],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 180.0],
        ),
        "archive_polls_total": Counter(
            "outscraper_archive_polls_total",
            "Archive lookups performed while waiting for a job, by reported status",
            ["status"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()
