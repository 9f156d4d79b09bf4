# src/webanalyzer/server/metrics.py
import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server
from prometheus_client.exposition import CONTENT_TYPE_LATEST, generate_latest

logger = logging.getLogger(__name__)

# Requests that matched no route share one label value.
UNMATCHED_PATH = "<unmatched>"


class RequestMetrics:
    """
    Prometheus request counter and latency histogram for one app instance.

    Each instance owns its registry, so several apps in one process (tests,
    workers) never collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["path", "method", "status"],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["path"],
            registry=self.registry,
        )

    def observe(self, path: str, method: str, status_code: int, duration: float) -> None:
        self.requests_total.labels(path, method, str(status_code)).inc()
        self.request_duration.labels(path).observe(duration)

    def render(self):
        """Returns the exposition payload and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST

    def serve(self, port: int, host: str = "0.0.0.0") -> None:
        """Starts the standalone metrics endpoint in a background thread."""
        start_http_server(port, addr=host, registry=self.registry)
        logger.info("Metrics available on http://%s:%d/metrics", host, port)
