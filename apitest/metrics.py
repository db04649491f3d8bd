from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Summary, generate_latest, start_http_server


logger = logging.getLogger(__name__)

LABELS = ["name", "hostname", "path", "method"]


class RunMetrics:
    """Prometheus counters for processed requests, failures and durations.

    Each instance owns its registry so separate runs (and tests) do not
    collide on metric names. prometheus_client metrics are thread-safe, which
    lets the monitor loop write while the HTTP exporter reads.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.requests_total = Counter(
            "requests_total",
            "The total number of processed requests",
            LABELS,
            namespace="apitest",
            registry=self.registry,
        )
        self.request_errors = Counter(
            "requests_errors_total",
            "The total number of requests that had at least one assertion error",
            LABELS,
            namespace="apitest",
            registry=self.registry,
        )
        self.request_duration = Summary(
            "requests_duration",
            "The duration for requests made, in seconds",
            LABELS,
            namespace="apitest",
            registry=self.registry,
        )

    def record(
        self,
        name: str,
        hostname: str,
        path: str,
        method: str,
        duration_seconds: float,
        *,
        failed: bool = False,
    ) -> None:
        labels = (name, hostname, path, method)
        self.requests_total.labels(*labels).inc()
        self.request_duration.labels(*labels).observe(duration_seconds)
        # At most one error per request, however many assertions failed.
        if failed:
            self.request_errors.labels(*labels).inc()

    def serve(self, port: int, addr: str = "0.0.0.0"):
        result = start_http_server(port, addr=addr, registry=self.registry)
        logger.info("Listening on port %d", port)
        return result

    def exposition(self) -> bytes:
        return generate_latest(self.registry)
